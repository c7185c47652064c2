# almoxarifado/usecases/backup.py
"""
UC: backup completo em ZIP.

Conteúdo do arquivo:
  00-Resumo.xlsx    estatísticas gerais, por categoria e por fornecedor
  01-Itens.xlsx     catálogo
  02-Entradas.xlsx  histórico de entradas
  03-Saidas.xlsx    histórico de saídas
  04-Lotes.xlsx     lotes de cada item (achatados)
  README.txt
"""

from __future__ import annotations

import zipfile
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from almoxarifado.adapters.exportacao import planilha_xlsx
from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.estado import formatar_validade
from almoxarifado.domain.lotes import normalizar_quantidade
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.infra.logger import log_file_operation, log_system_event
from almoxarifado.infra.repositories import EntradaRepo, SaidaRepo
from .historico import data_do_registro, format_date

README = """BACKUP COMPLETO DO SISTEMA DE CONTROLE DE ESTOQUE

Data do Backup: {data}

ESTRUTURA DO BACKUP:
===================

00-Resumo.xlsx
  - Estatísticas gerais do sistema
  - Resumo de itens, entradas, saídas e lotes
  - Distribuição por categoria e fornecedor

01-Itens.xlsx
  - Lista completa de todos os itens cadastrados

02-Entradas.xlsx
  - Histórico completo de todas as entradas registradas

03-Saidas.xlsx
  - Histórico completo de todas as saídas registradas

04-Lotes.xlsx
  - Lotes de estoque de cada item (validade e quantidade)

INSTRUÇÕES:
==========

1. Este backup contém todos os dados do sistema na data indicada acima.
2. Guarde este arquivo em local seguro e faça backups regulares.
3. Para restaurar dados, use as planilhas Excel como referência.
"""


def _validade(valor: Any) -> str:
    return formatar_validade(valor) if valor else "-"


def _df_itens(itens: List[Dict[str, Any]]) -> pd.DataFrame:
    colunas = ["Código", "Nome", "Categoria", "Local", "Fornecedor", "Quantidade", "Unidade", "Validade", "Observações"]
    return pd.DataFrame(
        [
            [
                i.get("codigo") or "-",
                i.get("nome") or "-",
                i.get("categoria") or "-",
                i.get("local") or "-",
                i.get("fornecedor") or "-",
                i.get("quantidade") or 0,
                i.get("unidade") or "UN",
                _validade(i.get("validade")),
                i.get("observacoes") or "-",
            ]
            for i in itens
        ],
        columns=colunas,
    )


def _df_entradas(entradas: List[Dict[str, Any]]) -> pd.DataFrame:
    colunas = ["ID", "Data", "Item ID", "Código", "Quantidade", "Validade", "Fornecedor", "Observação", "Usuário", "Criado em"]
    return pd.DataFrame(
        [
            [
                e["id"],
                format_date(data_do_registro(e)),
                e.get("item_id") or "-",
                e.get("codigo") or "-",
                e.get("quantidade") or 0,
                _validade(e.get("validade")),
                e.get("fornecedor") or "-",
                e.get("observacao") or "-",
                e.get("usuario") or "-",
                format_date(e.get("criado_em")),
            ]
            for e in entradas
        ],
        columns=colunas,
    )


def _df_saidas(saidas: List[Dict[str, Any]]) -> pd.DataFrame:
    colunas = ["ID", "Data", "Item ID", "Código", "Quantidade", "Setor Destino", "Retirado Por", "Observação", "Usuário", "Criado em"]
    return pd.DataFrame(
        [
            [
                s["id"],
                format_date(data_do_registro(s)),
                s.get("item_id") or "-",
                s.get("codigo") or "-",
                s.get("quantidade") or 0,
                s.get("setor_destino") or "-",
                s.get("retirado_por") or "-",
                s.get("observacao") or "-",
                s.get("usuario") or "-",
                format_date(s.get("criado_em")),
            ]
            for s in saidas
        ],
        columns=colunas,
    )


def lotes_achatados(itens: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Um registro por lote, com o item de origem."""
    return [
        {
            "item_id": i["id"],
            "codigo": i.get("codigo") or "",
            "nome": i.get("nome") or "",
            "validade": l.get("validade"),
            "quantidade": l.get("quantidade") or 0,
        }
        for i in itens
        for l in i.get("lotes") or []
    ]


def _df_lotes(lotes: List[Dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(
        [[l["item_id"], l["codigo"] or "-", l["nome"] or "-", _validade(l["validade"]), l["quantidade"]] for l in lotes],
        columns=["Item ID", "Código", "Nome", "Validade", "Quantidade"],
    )


def _soma(registros: List[Dict[str, Any]]):
    return normalizar_quantidade(sum(r.get("quantidade") or 0 for r in registros))


def _df_resumo(itens: List[Dict[str, Any]]) -> pd.DataFrame:
    linhas = [["Categoria", c, n] for c, n in Counter(i.get("categoria") or "Sem categoria" for i in itens).items()]
    linhas += [["Fornecedor", f, n] for f, n in Counter(i.get("fornecedor") or "Sem fornecedor" for i in itens).items()]
    return pd.DataFrame(linhas, columns=["Agrupamento", "Nome", "Itens"])


def gerar_backup(ctx: ContextoAplicacao, caminho_zip: str, agora: Optional[datetime] = None) -> Dict[str, int]:
    """Gera o ZIP em `caminho_zip` e devolve a contagem de registros por arquivo."""
    usuario = ctx.exigir(Permissao.VIEW_REPORTS)
    agora = agora or datetime.now()
    carimbo = agora.strftime("%d/%m/%Y, %H:%M:%S")

    itens = ctx.recarregar_itens()
    entradas = EntradaRepo(ctx.db_path).listar()
    saidas = SaidaRepo(ctx.db_path).listar()
    lotes = lotes_achatados(itens)

    resumo = [
        ("Data do Backup:", carimbo),
        ("Total de Itens:", len(itens)),
        ("Total de Entradas:", len(entradas)),
        ("Total de Saídas:", len(saidas)),
        ("Total de Lotes:", len(lotes)),
        ("Quantidade Total em Estoque:", _soma(itens)),
        ("Quantidade Total de Entradas:", _soma(entradas)),
        ("Quantidade Total de Saídas:", _soma(saidas)),
        ("Quantidade Total em Lotes:", _soma(lotes)),
    ]
    arquivos = {
        "00-Resumo.xlsx": planilha_xlsx("BACKUP COMPLETO - RESUMO DO SISTEMA", resumo, _df_resumo(itens), "Resumo", 30),
        "01-Itens.xlsx": planilha_xlsx(
            "BACKUP COMPLETO - ITENS DO ESTOQUE",
            [("Data do Backup:", carimbo), ("Total de Itens:", len(itens))], _df_itens(itens), "Itens"),
        "02-Entradas.xlsx": planilha_xlsx(
            "BACKUP COMPLETO - HISTÓRICO DE ENTRADAS",
            [("Data do Backup:", carimbo), ("Total de Entradas:", len(entradas))], _df_entradas(entradas), "Entradas"),
        "03-Saidas.xlsx": planilha_xlsx(
            "BACKUP COMPLETO - HISTÓRICO DE SAÍDAS",
            [("Data do Backup:", carimbo), ("Total de Saídas:", len(saidas))], _df_saidas(saidas), "Saídas"),
        "04-Lotes.xlsx": planilha_xlsx(
            "BACKUP COMPLETO - LOTES DE ESTOQUE",
            [("Data do Backup:", carimbo), ("Total de Lotes:", len(lotes))], _df_lotes(lotes), "Lotes"),
    }

    with zipfile.ZipFile(caminho_zip, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for nome, conteudo in arquivos.items():
            zf.writestr(nome, conteudo)
        zf.writestr("README.txt", README.format(data=carimbo))

    contagem = {"itens": len(itens), "entradas": len(entradas), "saidas": len(saidas), "lotes": len(lotes)}
    log_file_operation("backup", caminho_zip, rows_processed=sum(contagem.values()))
    log_system_event("backup_gerado", {"arquivo": caminho_zip, "por": usuario.email, **contagem})
    return contagem
