# almoxarifado/adapters/cli.py
"""
CLI do almoxarifado (Typer).

Comandos principais:
- migrate                          -> aplica migrações
- params set/get/show              -> parâmetros globais (estoque baixo, vencimento...)
- usuarios init-admin/criar/listar/papel
- item novo/editar/listar/consistencia/sincronizar/verificar-codigo
- entrada / entrada-lotes <xlsx>   -> registra entradas
- saida                            -> registra uma saída (consome lotes, validade mais próxima primeiro)
- dashboard                        -> painel do dia
- historico entradas/saidas        -> filtros por código, dia e setor; exportação CSV
- ajuste                           -> correção manual de estoque
- pedido criar/listar/aprovar/rejeitar/finalizar
- rel estoque-baixo/vencimentos/periodo/planilha
- auditoria, backup, logs

Credenciais: --email/--senha ou variáveis ALMOX_EMAIL/ALMOX_SENHA.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from almoxarifado.config import DB_PATH, DEFAULTS
from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.exceptions import AlmoxarifadoError, ErroAutenticacao, ValidationError, mensagem_amigavel
from almoxarifado.infra.auth import ProvedorIdentidade
from almoxarifado.infra.logger import get_log_summary
from almoxarifado.infra.migrations import apply_migrations
from almoxarifado.infra.repositories import ItemRepo, ParamsRepo
from almoxarifado.adapters.exportacao import exportar_csv, exportar_estoque_xlsx
from almoxarifado.adapters.parsers import parse_data, parse_quantidade
from almoxarifado.domain.permissoes import Papel, Permissao
from almoxarifado.usecases.ajustes import listar_ajustes, registrar_ajuste
from almoxarifado.usecases.auditoria import listar_auditoria
from almoxarifado.usecases.backup import gerar_backup
from almoxarifado.usecases.historico import (
    format_date, linhas_exportacao_entradas, linhas_exportacao_saidas, listar_entradas, listar_saidas,
)
from almoxarifado.usecases.itens import (
    buscar_itens_catalogo, cadastrar_item, editar_item, obter_item, sincronizar_quantidade,
    verificar_consistencia, verificar_consistencia_geral,
)
from almoxarifado.usecases.pedidos import (
    APROVADO, REJEITADO, atualizar_status, criar_pedido, finalizar_pedido, listar_pedidos,
)
from almoxarifado.usecases.registrar_entrada import registrar_entrada, registrar_entradas_planilha
from almoxarifado.usecases.registrar_saida import registrar_saida
from almoxarifado.usecases.relatorios import (
    painel, relatorio_estoque_baixo, relatorio_periodo, relatorio_vencimentos,
)
from almoxarifado.usecases.usuarios import alterar_papel, criar_usuario, listar_usuarios
from almoxarifado.usecases.verificar_codigo import VerificadorCodigoDuplicado


app = typer.Typer(help="Almoxarifado — controle de estoque (CLI)")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
EMAIL_OPT = typer.Option(None, "--email", envvar="ALMOX_EMAIL", help="Email do usuário")
SENHA_OPT = typer.Option(None, "--senha", envvar="ALMOX_SENHA", help="Senha do usuário")


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt_num(val: Any) -> str:
    if isinstance(val, float) and not val.is_integer():
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"{int(val):,}".replace(",", ".")


def _celula(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, (int, float)):
        return _fmt_num(val)
    if hasattr(val, "to_date") or isinstance(val, datetime):
        return format_date(val)
    return str(val)


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado", colunas: Optional[List[str]] = None) -> None:
    """Exibe uma lista de dicionários em tabela Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    columns = colunas or list(data[0].keys())
    table = Table(title=title, box=box.ROUNDED)
    for column in columns:
        if column.lower() in ("quantidade", "limite", "diferenca", "soma_lotes", "quantidade_vencendo"):
            table.add_column(column, justify="right")
        elif column.lower() in ("data", "validade", "criado_em"):
            table.add_column(column, justify="center")
        else:
            table.add_column(column)

    for row in data:
        valores = []
        for col in columns:
            val = _celula(row.get(col))
            if col == "status" or col == "situacao":
                if val in ("VENCIDO", "rejeitado", "Estoque Baixo"):
                    val = f"[bold red]{val}[/]"
                elif val in ("pendente",) or val.endswith("dias"):
                    val = f"[bold yellow]{val}[/]"
                elif val in ("aprovado", "finalizado", "OK"):
                    val = f"[bold green]{val}[/]"
            valores.append(val)
        table.add_row(*valores)
    console.print(table)


def _display_campos(campos: Dict[str, Any], title: str) -> None:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    for chave, valor in campos.items():
        table.add_row(chave, _celula(valor))
    console.print(table)


def _falhar(mensagem: str) -> None:
    console.print(f"[bold red]{mensagem}[/]")
    raise typer.Exit(code=1)


@contextmanager
def _sessao(db_path: str, email: Optional[str], senha: Optional[str]) -> Iterator[ContextoAplicacao]:
    """Abre um contexto autenticado; erros de negócio viram mensagem + código 1."""
    if not email or not senha:
        _falhar("Informe --email e --senha (ou ALMOX_EMAIL / ALMOX_SENHA).")
    ctx = ContextoAplicacao(db_path)
    try:
        resultado = ctx.entrar(email, senha)
        if not resultado.success:
            raise ErroAutenticacao(resultado.error)
        yield ctx
    except AlmoxarifadoError as e:
        _falhar(mensagem_amigavel(e))
    finally:
        ctx.sair()
        ctx.fechar()


def _quantidade(txt: Optional[str]) -> Any:
    if txt is None:
        return None
    num = parse_quantidade(txt)
    return txt if num is None else num


def _data(txt: Optional[str]) -> Optional[str]:
    if not txt:
        return None
    return parse_data(txt) or txt


def _resolver_item(ctx: ContextoAplicacao, ref: str) -> Dict[str, Any]:
    """Item pelo id ou pelo código de barras."""
    item = ItemRepo(ctx.db_path).obter(ref)
    return item or obter_item(ctx.db_path, codigo=ref)


def _sem_vazios(dados: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in dados.items() if v is not None}


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Aplica as migrações do banco."""
    apply_migrations(db_path)
    typer.echo(f">> Migrações aplicadas em: {db_path}")


params_app = typer.Typer(help="Gerenciar parâmetros globais (estoque baixo, vencimentos, transações).")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    estoque_baixo_limite: Optional[float] = typer.Option(None, help="Quantidade <= limite é estoque baixo (ex.: 10)"),
    vencimento_proximo_dias: Optional[int] = typer.Option(None, help="Janela de alerta de validade em dias (ex.: 30)"),
    atraso_verificacao_codigo: Optional[float] = typer.Option(None, help="Espera em segundos antes de consultar código"),
    max_tentativas_transacao: Optional[int] = typer.Option(None, help="Tentativas de gravação condicional por item"),
    recentes_limite: Optional[int] = typer.Option(None, help="Movimentações recentes no painel"),
    db_path: str = DB_OPT,
):
    """Define parâmetros globais (apenas os informados são alterados)."""
    informados = {
        "estoque_baixo_limite": estoque_baixo_limite,
        "vencimento_proximo_dias": vencimento_proximo_dias,
        "atraso_verificacao_codigo": atraso_verificacao_codigo,
        "max_tentativas_transacao": max_tentativas_transacao,
        "recentes_limite": recentes_limite,
    }
    items = [(k, str(v)) for k, v in informados.items() if v is not None]
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    apply_migrations(db_path)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: estoque_baixo_limite | vencimento_proximo_dias"),
    db_path: str = DB_OPT,
):
    """Mostra um parâmetro específico."""
    apply_migrations(db_path)
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(db_path: str = DB_OPT):
    """Exibe os parâmetros efetivos (com fallback para os padrões)."""
    apply_migrations(db_path)
    efetivos = ParamsRepo(db_path).efetivos()
    linhas = [
        {"Parâmetro": k, "Valor Atual": v, "Valor Padrão": getattr(DEFAULTS, k)}
        for k, v in efetivos.items()
    ]
    _display_table(linhas, title="Parâmetros do Sistema")
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# usuários
# -----------------------

usuarios_app = typer.Typer(help="Usuários e papéis de acesso.")
app.add_typer(usuarios_app, name="usuarios")


@usuarios_app.command("init-admin")
def cmd_init_admin(email: str = typer.Option(..., "--email", envvar="ALMOX_EMAIL"),
                   senha: str = typer.Option(..., "--senha", envvar="ALMOX_SENHA"),
                   db_path: str = DB_OPT):
    """Cria o administrador inicial (ou promove o usuário existente)."""
    apply_migrations(db_path)
    try:
        usuario = ProvedorIdentidade(db_path).garantir_admin(email, senha)
    except AlmoxarifadoError as e:
        _falhar(mensagem_amigavel(e))
    typer.echo(f">> Administrador pronto: {usuario.email}")


@usuarios_app.command("criar")
def cmd_usuarios_criar(
    novo_email: str = typer.Argument(..., help="Email do novo usuário"),
    nova_senha: str = typer.Option(..., "--nova-senha", help="Senha do novo usuário (mín. 6 caracteres)"),
    papel: str = typer.Option(Papel.USUARIO.value, help="admin | usuario"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Cria um usuário (apenas administradores)."""
    with _sessao(db_path, email, senha) as ctx:
        usuario = criar_usuario(ctx, novo_email, nova_senha, papel)
        typer.echo(f">> Usuário criado: {usuario.email} ({usuario.papel})")


@usuarios_app.command("listar")
def cmd_usuarios_listar(email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT):
    """Lista os usuários cadastrados."""
    with _sessao(db_path, email, senha) as ctx:
        _display_table(listar_usuarios(ctx), title="Usuários", colunas=["email", "papel"])


@usuarios_app.command("papel")
def cmd_usuarios_papel(
    alvo: str = typer.Argument(..., help="Email do usuário"),
    papel: str = typer.Argument(..., help="admin | usuario"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Altera o papel de um usuário."""
    with _sessao(db_path, email, senha) as ctx:
        usuario = alterar_papel(ctx, alvo, papel)
        typer.echo(f">> {usuario.email} agora é {usuario.papel}")


# -----------------------
# itens
# -----------------------

item_app = typer.Typer(help="Catálogo de itens.")
app.add_typer(item_app, name="item")


@item_app.command("novo")
def cmd_item_novo(
    nome: str = typer.Option(..., help="Nome do item"),
    codigo: str = typer.Option("", help="Código de barras (opcional)"),
    categoria: str = typer.Option("", help="Categoria"),
    unidade: str = typer.Option("UN", help="UN | KG | LT | MT | CX | PC"),
    local: str = typer.Option("", help="Local de armazenamento"),
    fornecedor: str = typer.Option("", help="Fornecedor"),
    observacao: str = typer.Option("", help="Observação"),
    quantidade: Optional[str] = typer.Option(None, help="Quantidade inicial (vira um lote)"),
    validade: Optional[str] = typer.Option(None, help="Validade da quantidade inicial (dd/mm/aaaa)"),
    estoque_minimo: Optional[float] = typer.Option(None, help="Limite de estoque baixo específico do item"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Cadastra um item no catálogo."""
    with _sessao(db_path, email, senha) as ctx:
        item_id = cadastrar_item(ctx, _sem_vazios({
            "nome": nome, "codigo": codigo, "categoria": categoria, "unidade": unidade, "local": local,
            "fornecedor": fornecedor, "observacao": observacao, "quantidade": _quantidade(quantidade),
            "validade": _data(validade), "estoque_minimo": estoque_minimo,
        }))
        typer.echo(f">> Item cadastrado: {item_id}")


@item_app.command("editar")
def cmd_item_editar(
    ref: str = typer.Argument(..., help="ID ou código de barras do item"),
    nome: Optional[str] = typer.Option(None),
    codigo: Optional[str] = typer.Option(None),
    categoria: Optional[str] = typer.Option(None),
    unidade: Optional[str] = typer.Option(None),
    local: Optional[str] = typer.Option(None),
    fornecedor: Optional[str] = typer.Option(None),
    observacao: Optional[str] = typer.Option(None),
    estoque_minimo: Optional[float] = typer.Option(None),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Altera dados cadastrais (a quantidade muda só por movimentos ou ajuste)."""
    with _sessao(db_path, email, senha) as ctx:
        alteracoes = _sem_vazios({
            "nome": nome, "codigo": codigo, "categoria": categoria, "unidade": unidade, "local": local,
            "fornecedor": fornecedor, "observacao": observacao, "estoque_minimo": estoque_minimo,
        })
        if not alteracoes:
            _falhar("Nada a alterar. Informe pelo menos um campo.")
        item = editar_item(ctx, _resolver_item(ctx, ref)["id"], alteracoes)
        typer.echo(f">> Item atualizado: {item.get('nome')}")


@item_app.command("listar")
def cmd_item_listar(
    busca: str = typer.Option("", help="Busca tolerante a erros por nome, código ou categoria"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Lista o catálogo (ordenado por nome ou por relevância da busca)."""
    with _sessao(db_path, email, senha) as ctx:
        itens = buscar_itens_catalogo(ctx, busca)
        _display_table(itens, title="Itens",
                       colunas=["codigo", "nome", "categoria", "quantidade", "unidade", "validade", "local"])


@item_app.command("consistencia")
def cmd_item_consistencia(
    ref: Optional[str] = typer.Argument(None, help="ID ou código; sem argumento verifica todos"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Compara a quantidade total com a soma dos lotes."""
    with _sessao(db_path, email, senha) as ctx:
        if ref is None:
            _display_table(verificar_consistencia_geral(ctx), title="Itens Inconsistentes")
            return
        r = verificar_consistencia(ctx, _resolver_item(ctx, ref)["id"])
        cor = "green" if r.is_valid else "red"
        console.print(f"[{cor}]{r.mensagem}[/]")


@item_app.command("sincronizar")
def cmd_item_sincronizar(
    ref: str = typer.Argument(..., help="ID ou código de barras do item"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Corrige a quantidade total para a soma dos lotes."""
    with _sessao(db_path, email, senha) as ctx:
        r = sincronizar_quantidade(ctx, _resolver_item(ctx, ref)["id"])
        typer.echo(f">> {r['mensagem']}")


@item_app.command("verificar-codigo")
def cmd_item_verificar_codigo(
    codigo: str = typer.Argument(..., help="Código de barras"),
    db_path: str = DB_OPT,
):
    """Informa se o código de barras já está em uso."""
    apply_migrations(db_path)

    async def _rodar():
        verificador = VerificadorCodigoDuplicado(db_path, atraso=0)
        verificador.agendar(codigo)
        return await verificador.aguardar()

    resultado = asyncio.run(_rodar())
    if resultado.duplicado:
        _falhar("Já existe um item com este código de barras!")
    typer.echo(">> Código disponível.")


# -----------------------
# movimentações
# -----------------------

@app.command("entrada")
def cmd_entrada(
    quantidade: str = typer.Option(..., help="Quantidade (aceita vírgula decimal)"),
    codigo: str = typer.Option("", help="Código de barras"),
    nome: str = typer.Option("", help="Nome do item (obrigatório se o item não existir)"),
    validade: Optional[str] = typer.Option(None, help="Validade do lote (dd/mm/aaaa)"),
    fornecedor: str = typer.Option("", help="Fornecedor"),
    observacao: str = typer.Option("", help="Observação"),
    categoria: Optional[str] = typer.Option(None, help="Categoria (item novo)"),
    unidade: Optional[str] = typer.Option(None, help="Unidade (item novo)"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Registra uma entrada de estoque."""
    with _sessao(db_path, email, senha) as ctx:
        dados = _sem_vazios({
            "codigo": codigo, "nome": nome, "quantidade": _quantidade(quantidade), "validade": _data(validade),
            "fornecedor": fornecedor, "observacao": observacao, "categoria": categoria, "unidade": unidade,
        })
        entrada_id = registrar_entrada(ctx, dados)
        _display_campos({"ID": entrada_id, "Código": codigo, "Nome": nome,
                         "Quantidade": dados["quantidade"], "Validade": dados.get("validade") or "-"},
                        title="Entrada Registrada")


@app.command("entrada-lotes")
def cmd_entrada_lotes(
    path: str = typer.Argument(..., help="Caminho do XLSX de ENTRADAS"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Registra entradas em lote a partir de um XLSX."""
    with _sessao(db_path, email, senha) as ctx:
        info = registrar_entradas_planilha(ctx, path)
    panel_content = [
        f"Total de registros: {info['total']}",
        f"Processados com sucesso: {info['sucessos']}",
    ]
    if info["erros"]:
        panel_content.append(f"Erros: {len(info['erros'])}")
    console.print(Panel("\n".join(panel_content), title=f"{info['tipo']} em Lote"))
    if info["erros"]:
        _display_table(info["erros"], title="Erros Encontrados", colunas=["linha", "mensagem"])


@app.command("saida")
def cmd_saida(
    quantidade: str = typer.Option(..., help="Quantidade (aceita vírgula decimal)"),
    setor: str = typer.Option(..., "--setor", help="Setor destino"),
    codigo: str = typer.Option("", help="Código de barras"),
    item_id: Optional[str] = typer.Option(None, "--item-id", help="ID do item (quando não há código)"),
    retirado_por: str = typer.Option("", help="Quem retirou"),
    observacao: str = typer.Option("", help="Observação"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Registra uma saída, consumindo primeiro os lotes de validade mais próxima."""
    with _sessao(db_path, email, senha) as ctx:
        dados = _sem_vazios({
            "codigo": codigo, "item_id": item_id, "quantidade": _quantidade(quantidade),
            "setor_destino": setor, "retirado_por": retirado_por, "observacao": observacao,
        })
        saida_id = registrar_saida(ctx, dados)
        _display_campos({"ID": saida_id, "Código": codigo or item_id, "Quantidade": dados["quantidade"],
                         "Setor Destino": setor}, title="Saída Registrada")


@app.command("ajuste")
def cmd_ajuste(
    ref: str = typer.Argument(..., help="ID ou código de barras do item"),
    nova: str = typer.Option(..., "--nova", help="Quantidade correta"),
    motivo: str = typer.Option(..., help="Motivo do ajuste"),
    anterior: Optional[str] = typer.Option(None, "--anterior", help="Quantidade vista antes do ajuste (padrão: atual)"),
    observacao: str = typer.Option("", help="Observação"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Corrige manualmente a quantidade de um item."""
    with _sessao(db_path, email, senha) as ctx:
        item = _resolver_item(ctx, ref)
        ajuste_id = registrar_ajuste(ctx, {
            "item_id": item["id"],
            "quantidade_anterior": (item.get("quantidade") or 0) if anterior is None else _quantidade(anterior),
            "quantidade_nova": _quantidade(nova),
            "motivo": motivo,
            "observacao": observacao,
        })
        typer.echo(f">> Ajuste registrado: {ajuste_id}")


@app.command("ajustes")
def cmd_ajustes(
    ref: Optional[str] = typer.Argument(None, help="ID ou código de barras (opcional)"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Histórico de ajustes de estoque."""
    with _sessao(db_path, email, senha) as ctx:
        item_id = _resolver_item(ctx, ref)["id"] if ref else None
        _display_table(listar_ajustes(ctx, item_id), title="Ajustes de Estoque",
                       colunas=["criado_em", "item_codigo", "item_nome", "quantidade_anterior",
                                "quantidade_nova", "diferenca", "motivo", "usuario"])


# -----------------------
# painel e histórico
# -----------------------

@app.command("dashboard")
def cmd_dashboard(email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT):
    """Resumo do dia: totais, movimentações, estoque baixo e vencimentos."""
    with _sessao(db_path, email, senha) as ctx:
        p = painel(ctx)
        console.print(Panel(
            "\n".join([
                f"Itens cadastrados: {p['total_itens']}",
                f"Quantidade em estoque: {_fmt_num(p['quantidade_total'])}",
                f"Entradas hoje: {p['entradas_hoje']} ({_fmt_num(p['quantidade_entrada_hoje'])})",
                f"Saídas hoje: {p['saidas_hoje']} ({_fmt_num(p['quantidade_saida_hoje'])})",
                f"Estoque baixo: {len(p['estoque_baixo'])}",
                f"Vencendo: {len(p['vencendo'])}",
            ]),
            title="Painel",
        ))
        _display_table(p["entradas_recentes"], title="Entradas Recentes",
                       colunas=["data", "codigo", "nome", "quantidade"])
        _display_table(p["saidas_recentes"], title="Saídas Recentes",
                       colunas=["data", "codigo", "nome", "quantidade", "setor_destino"])


historico_app = typer.Typer(help="Histórico de movimentações.")
app.add_typer(historico_app, name="historico")


def _dia(txt: Optional[str]):
    if not txt:
        return None
    iso = parse_data(txt)
    if iso is None:
        raise ValidationError([f"Data inválida: {txt}"])
    return datetime.fromisoformat(iso).date()


@historico_app.command("entradas")
def cmd_historico_entradas(
    codigo: str = typer.Option("", help="Trecho do código de barras"),
    dia: Optional[str] = typer.Option(None, help="Dia (dd/mm/aaaa)"),
    csv: Optional[str] = typer.Option(None, "--csv", help="Exporta o resultado para este arquivo CSV"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Histórico de entradas, mais recentes primeiro."""
    with _sessao(db_path, email, senha) as ctx:
        registros = listar_entradas(ctx, codigo=codigo, dia=_dia(dia))
        linhas = linhas_exportacao_entradas(registros)
        if csv:
            if exportar_csv(linhas, csv, ao_erro=_falhar):
                typer.echo(f">> {len(linhas)} entradas exportadas para {csv}")
            return
        _display_table(linhas, title="Histórico de Entradas")


@historico_app.command("saidas")
def cmd_historico_saidas(
    codigo: str = typer.Option("", help="Trecho do código de barras"),
    setor: str = typer.Option("", help="Trecho do setor destino"),
    dia: Optional[str] = typer.Option(None, help="Dia (dd/mm/aaaa)"),
    csv: Optional[str] = typer.Option(None, "--csv", help="Exporta o resultado para este arquivo CSV"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Histórico de saídas, mais recentes primeiro."""
    with _sessao(db_path, email, senha) as ctx:
        registros = listar_saidas(ctx, codigo=codigo, setor=setor, dia=_dia(dia))
        linhas = linhas_exportacao_saidas(registros)
        if csv:
            if exportar_csv(linhas, csv, ao_erro=_falhar):
                typer.echo(f">> {len(linhas)} saídas exportadas para {csv}")
            return
        _display_table(linhas, title="Histórico de Saídas")


# -----------------------
# pedidos
# -----------------------

pedido_app = typer.Typer(help="Pedidos de material.")
app.add_typer(pedido_app, name="pedido")


def _linha_pedido(ctx: ContextoAplicacao, texto: str, personalizado: bool) -> Dict[str, Any]:
    ref, sep, qtd = texto.rpartition(":")
    if not sep or not ref.strip():
        raise ValidationError([f"Use o formato REF:QUANTIDADE ({texto})"])
    quantidade = _quantidade(qtd)
    if personalizado:
        return {"nome": ref.strip(), "quantidade": quantidade, "personalizado": True}
    item = _resolver_item(ctx, ref.strip())
    return {"item_id": item["id"], "codigo": item.get("codigo", ""), "nome": item.get("nome", ""),
            "quantidade": quantidade}


@pedido_app.command("criar")
def cmd_pedido_criar(
    item: List[str] = typer.Option([], "--item", help="CODIGO:QUANTIDADE de item do catálogo (repetível)"),
    personalizado: List[str] = typer.Option([], "--personalizado", help="NOME:QUANTIDADE fora do catálogo (repetível)"),
    setor: str = typer.Option("", "--setor", help="Setor destino"),
    observacao: str = typer.Option("", help="Observação"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Cria um pedido de material."""
    with _sessao(db_path, email, senha) as ctx:
        linhas = [_linha_pedido(ctx, t, False) for t in item]
        linhas += [_linha_pedido(ctx, t, True) for t in personalizado]
        pedido_id = criar_pedido(ctx, linhas, setor_destino=setor, observacao=observacao)
        typer.echo(f">> Pedido criado: {pedido_id}")


@pedido_app.command("listar")
def cmd_pedido_listar(
    status: Optional[str] = typer.Option(None, help="pendente | aprovado | rejeitado | finalizado"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Lista pedidos (administradores veem todos)."""
    with _sessao(db_path, email, senha) as ctx:
        pedidos = [
            {**p, "itens": "; ".join(f"{l.get('nome') or l.get('codigo')} x{_celula(l.get('quantidade'))}"
                                     for l in p.get("itens") or [])}
            for p in listar_pedidos(ctx, status)
        ]
        _display_table(pedidos, title="Pedidos",
                       colunas=["id", "criado_em", "solicitado_por", "setor_destino", "itens", "status"])


@pedido_app.command("aprovar")
def cmd_pedido_aprovar(
    pedido_id: str = typer.Argument(...),
    observacao: str = typer.Option("", help="Observação do administrador"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Aprova um pedido pendente."""
    with _sessao(db_path, email, senha) as ctx:
        atualizar_status(ctx, pedido_id, APROVADO, observacao)
        typer.echo(">> Pedido aprovado.")


@pedido_app.command("rejeitar")
def cmd_pedido_rejeitar(
    pedido_id: str = typer.Argument(...),
    observacao: str = typer.Option("", help="Motivo da rejeição"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Rejeita um pedido pendente."""
    with _sessao(db_path, email, senha) as ctx:
        atualizar_status(ctx, pedido_id, REJEITADO, observacao)
        typer.echo(">> Pedido rejeitado.")


@pedido_app.command("finalizar")
def cmd_pedido_finalizar(
    pedido_id: str = typer.Argument(...),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Dá baixa no estoque de um pedido aprovado (uma saída por item do catálogo)."""
    with _sessao(db_path, email, senha) as ctx:
        saidas = finalizar_pedido(ctx, pedido_id)
        typer.echo(f">> Pedido finalizado: {len(saidas)} saída(s) registrada(s).")


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios de estoque")
app.add_typer(rel_app, name="rel")


@rel_app.command("estoque-baixo")
def rel_estoque_baixo(email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT):
    """Itens com quantidade no limite de estoque baixo ou abaixo."""
    with _sessao(db_path, email, senha) as ctx:
        _display_table(relatorio_estoque_baixo(ctx), title="Estoque Baixo")


@rel_app.command("vencimentos")
def rel_vencimentos(
    janela_dias: Optional[int] = typer.Option(None, help="Dias até o vencimento (padrão: parâmetro do sistema)"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Itens vencidos ou próximos do vencimento."""
    with _sessao(db_path, email, senha) as ctx:
        _display_table(relatorio_vencimentos(ctx, janela_dias), title="Vencimentos")


@rel_app.command("periodo")
def rel_periodo(
    inicio: str = typer.Option(..., help="Data inicial (dd/mm/aaaa)"),
    fim: str = typer.Option(..., help="Data final (dd/mm/aaaa)"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Estatísticas de movimentação no período."""
    with _sessao(db_path, email, senha) as ctx:
        res = relatorio_periodo(ctx, _dia(inicio), _dia(fim))
        agrupados = {k: res.pop(k) for k in ("por_categoria", "por_fornecedor", "saidas_por_setor")}
        _display_campos(res, title=f"Período {res['periodo']}")
        for nome, valores in agrupados.items():
            _display_table([{"nome": k, "quantidade": v} for k, v in valores.items()], title=nome)


@rel_app.command("planilha")
def rel_planilha(
    path: str = typer.Argument(..., help="Arquivo XLSX de saída"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Exporta o relatório gerencial do estoque em XLSX."""
    with _sessao(db_path, email, senha) as ctx:
        ctx.exigir(Permissao.VIEW_REPORTS)
        if exportar_estoque_xlsx(ctx.recarregar_itens(), path, ctx.config.estoque_baixo_limite,
                                 ctx.config.vencimento_proximo_dias, ao_erro=_falhar):
            typer.echo(f">> Relatório exportado para {path}")


@app.command("auditoria")
def cmd_auditoria(
    limite: int = typer.Option(50, help="Quantidade de registros"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Últimas ações registradas na trilha de auditoria."""
    with _sessao(db_path, email, senha) as ctx:
        ctx.exigir(Permissao.VIEW_REPORTS)
        registros = [{**r, "dados": json.dumps(r.get("dados"), ensure_ascii=False, default=str)}
                     for r in listar_auditoria(ctx.db_path, limite)]
        _display_table(registros, title="Auditoria", colunas=["criado_em", "acao", "usuario", "dados"])


@app.command("backup")
def cmd_backup(
    path: Optional[str] = typer.Argument(None, help="Arquivo ZIP de saída"),
    email: Optional[str] = EMAIL_OPT, senha: Optional[str] = SENHA_OPT, db_path: str = DB_OPT,
):
    """Gera um backup completo (ZIP com planilhas XLSX)."""
    path = path or f"backup_estoque_{datetime.now():%d-%m-%Y_%H-%M-%S}.zip"
    with _sessao(db_path, email, senha) as ctx:
        contagem = gerar_backup(ctx, path)
        typer.echo(f">> Backup gerado em {path}: " + ", ".join(f"{k}={v}" for k, v in contagem.items()))


@app.command("logs")
def cmd_logs(
    tipo: str = typer.Argument("transactions", help="transactions | entradas | saidas | database | system"),
    linhas: int = typer.Option(50, help="Últimas N linhas"),
):
    """Mostra o final de um arquivo de log (requer ALMOX_LOGGING=1)."""
    conteudo = get_log_summary(tipo, lines=linhas)
    if conteudo is None:
        _falhar("Logging desativado. Defina ALMOX_LOGGING=1.")
    console.print(Panel(conteudo or "(vazio)", title=f"Log: {tipo}"))


def main():
    app()


if __name__ == "__main__":
    main()
