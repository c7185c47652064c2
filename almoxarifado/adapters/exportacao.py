# almoxarifado/adapters/exportacao.py
"""
Exportação de dados (CSV e XLSX) com pandas.

- exportar_csv(): linhas planas -> CSV com todos os valores entre aspas
- planilha_xlsx(): bytes de um XLSX com bloco de cabeçalho + tabela
- exportar_estoque_xlsx(): relatório gerencial do estoque com status por item
"""

from __future__ import annotations

import csv
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from almoxarifado.config import DEFAULTS
from almoxarifado.domain.estado import classificar_validade, formatar_validade, status_item, limite_do_item
from almoxarifado.infra.logger import log_file_operation, log_system_event, print_system
from almoxarifado.usecases.historico import format_date

MSG_SEM_DADOS = "Nenhum dado para exportar"


def _aviso_padrao(mensagem: str) -> None:
    log_system_event("export_empty", {"mensagem": mensagem}, level="warning")
    print_system(mensagem)


def _celula(valor: Any) -> Any:
    if hasattr(valor, "to_date") or isinstance(valor, datetime):
        return format_date(valor)
    return valor


def exportar_csv(
    linhas: List[Dict[str, Any]],
    caminho: str,
    ao_erro: Optional[Callable[[str], None]] = None,
) -> bool:
    """
    Grava `linhas` em CSV (cabeçalho = chaves da primeira linha).

    Sem linhas, nada é gravado: chama `ao_erro("Nenhum dado para exportar")`
    (ou registra um aviso) e devolve False.
    """
    if not linhas:
        (ao_erro or _aviso_padrao)(MSG_SEM_DADOS)
        return False

    colunas = list(linhas[0].keys())
    df = pd.DataFrame([{c: _celula(l.get(c)) for c in colunas} for l in linhas], columns=colunas)
    df.to_csv(caminho, index=False, quoting=csv.QUOTE_ALL, encoding="utf-8-sig")
    log_file_operation("export", caminho, rows_processed=len(df))
    return True


def planilha_xlsx(
    titulo: str,
    info: Sequence[Tuple[str, Any]],
    df: pd.DataFrame,
    aba: str,
    largura: int = 20,
) -> bytes:
    """XLSX com título, linhas de informação e a tabela `df` logo abaixo."""
    buffer = BytesIO()
    inicio_tabela = len(info) + 3  # título + linha em branco + info + linha em branco
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=aba, startrow=inicio_tabela, index=False)
        ws = writer.sheets[aba]
        ws.cell(row=1, column=1, value=titulo)
        for n, (rotulo, valor) in enumerate(info, start=3):
            ws.cell(row=n, column=1, value=rotulo)
            ws.cell(row=n, column=2, value=valor)
        for col in ws.columns:
            ws.column_dimensions[col[0].column_letter].width = largura
    return buffer.getvalue()


def _linhas_estoque(itens: List[Dict[str, Any]], limite: float, hoje: date) -> pd.DataFrame:
    linhas = []
    for i in itens:
        linhas.append({
            "CÓDIGO": i.get("codigo") or "-",
            "ITEM": i.get("nome") or "-",
            "CATEGORIA": i.get("categoria") or "-",
            "QUANTIDADE": i.get("quantidade") or 0,
            "UNIDADE": i.get("unidade") or "UN",
            "ESTOQUE MÍNIMO": limite_do_item(i, limite),
            "LOCAL": i.get("local") or "-",
            "VALIDADE": formatar_validade(i.get("validade")),
            "STATUS": status_item(i, limite, hoje),
        })
    return pd.DataFrame(linhas)


def exportar_estoque_xlsx(
    itens: List[Dict[str, Any]],
    caminho: str,
    limite_padrao: float = DEFAULTS.estoque_baixo_limite,
    janela_dias: int = DEFAULTS.vencimento_proximo_dias,
    ao_erro: Optional[Callable[[str], None]] = None,
    agora: Optional[datetime] = None,
) -> bool:
    """Relatório gerencial do estoque em XLSX."""
    if not itens:
        (ao_erro or _aviso_padrao)("Nenhum item para exportar")
        return False

    agora = agora or datetime.now()
    validades = [classificar_validade(i.get("validade"), janela_dias, agora) for i in itens]
    info = [
        ("Data da Exportação:", agora.strftime("%d/%m/%Y")),
        ("Hora da Exportação:", agora.strftime("%H:%M")),
        ("Total de Itens:", len(itens)),
        ("Quantidade Total em Estoque:", sum(i.get("quantidade") or 0 for i in itens)),
        ("Itens com Estoque Baixo:", sum(
            1 for i in itens if (i.get("quantidade") or 0) <= limite_do_item(i, limite_padrao))),
        ("Itens Próximos do Vencimento:", sum(1 for v in validades if v.vencendo)),
        ("Itens Vencidos:", sum(1 for v in validades if v.vencido)),
    ]
    conteudo = planilha_xlsx(
        "CONTROLE DE ESTOQUE - RELATÓRIO GERENCIAL", info,
        _linhas_estoque(itens, limite_padrao, agora.date()), "Estoque",
    )
    Path(caminho).write_bytes(conteudo)
    log_file_operation("export", caminho, rows_processed=len(itens))
    return True
