# almoxarifado/domain/validadores.py
"""
Regras de validação de itens, entradas e saídas.

Funções puras: recebem o dicionário do formulário e devolvem um
`ResultadoValidacao` com todas as mensagens acumuladas, na ordem
identificação -> quantidade -> destino.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MSG_NOME_OBRIGATORIO = "Nome é obrigatório"
MSG_QTD_NEGATIVA = "Quantidade não pode ser negativa"
MSG_ENTRADA_IDENTIFICACAO = "Código de barras ou nome do item é obrigatório"
MSG_QTD_POSITIVA = "Quantidade deve ser um número positivo"
MSG_SAIDA_IDENTIFICACAO = "Informe um código de barras ou selecione o item"
MSG_SETOR_OBRIGATORIO = "Setor destino é obrigatório"


@dataclass
class ResultadoValidacao:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _resultado(errors: List[str]) -> ResultadoValidacao:
    return ResultadoValidacao(is_valid=not errors, errors=errors)


def _preenchido(valor: Any) -> bool:
    return isinstance(valor, str) and valor.strip() != ""


def is_valid_quantidade(quantidade: Any) -> bool:
    """Verdadeiro só para números finitos e positivos (texto e bool não contam)."""
    if isinstance(quantidade, bool) or not isinstance(quantidade, (int, float)):
        return False
    if not math.isfinite(quantidade):
        return False
    return quantidade > 0


def is_valid_codigo(codigo: Any) -> bool:
    return _preenchido(codigo)


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and bool(_EMAIL_RE.match(email))


def is_valid_password(senha: Any) -> bool:
    """Senha com no mínimo 6 caracteres."""
    return isinstance(senha, str) and len(senha) >= 6


def validate_item(item: Dict[str, Any]) -> ResultadoValidacao:
    errors: List[str] = []
    if not _preenchido(item.get("nome")):
        errors.append(MSG_NOME_OBRIGATORIO)
    # código de barras é opcional
    quantidade = item.get("quantidade")
    if isinstance(quantidade, (int, float)) and not isinstance(quantidade, bool) and quantidade < 0:
        errors.append(MSG_QTD_NEGATIVA)
    return _resultado(errors)


def validate_entry(entry: Dict[str, Any]) -> ResultadoValidacao:
    errors: List[str] = []
    if not is_valid_codigo(entry.get("codigo")) and not _preenchido(entry.get("nome")):
        errors.append(MSG_ENTRADA_IDENTIFICACAO)
    if not is_valid_quantidade(entry.get("quantidade")):
        errors.append(MSG_QTD_POSITIVA)
    return _resultado(errors)


def validate_exit(saida: Dict[str, Any]) -> ResultadoValidacao:
    errors: List[str] = []
    if not is_valid_codigo(saida.get("codigo")) and not saida.get("item_id"):
        errors.append(MSG_SAIDA_IDENTIFICACAO)
    if not is_valid_quantidade(saida.get("quantidade")):
        errors.append(MSG_QTD_POSITIVA)
    if not _preenchido(saida.get("setor_destino")):
        errors.append(MSG_SETOR_OBRIGATORIO)
    return _resultado(errors)
