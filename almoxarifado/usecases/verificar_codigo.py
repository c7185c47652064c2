# almoxarifado/usecases/verificar_codigo.py
"""
UC: verificação de código de barras duplicado enquanto o usuário digita.

Cada chamada a `agendar()` cancela a verificação pendente e agenda uma nova,
que só consulta o armazenamento depois de `atraso` segundos sem novas
digitações. A gravação final do item sempre verifica de novo.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from almoxarifado.config import DEFAULTS
from almoxarifado.infra.logger import log_system_event
from .itens import codigo_em_uso


@dataclass
class ResultadoVerificacao:
    codigo: str
    duplicado: bool


class VerificadorCodigoDuplicado:
    def __init__(self, db_path: str, atraso: float = DEFAULTS.atraso_verificacao_codigo,
                 ignorar_id: Optional[str] = None):
        self.db_path = db_path
        self.atraso = atraso
        self.ignorar_id = ignorar_id
        self.ultimo: Optional[ResultadoVerificacao] = None
        self._tarefa: Optional[asyncio.Task] = None

    def agendar(self, codigo: str) -> asyncio.Task:
        """Agenda a verificação de `codigo`, descartando a anterior. Exige loop em execução."""
        self.cancelar()
        self._tarefa = asyncio.get_running_loop().create_task(self._verificar(codigo))
        return self._tarefa

    def cancelar(self) -> None:
        if self._tarefa is not None and not self._tarefa.done():
            self._tarefa.cancel()
        self._tarefa = None

    async def aguardar(self) -> Optional[ResultadoVerificacao]:
        """Espera a verificação pendente (se houver) e devolve o último resultado."""
        if self._tarefa is not None:
            await self._tarefa
        return self.ultimo

    async def _verificar(self, codigo: str) -> ResultadoVerificacao:
        await asyncio.sleep(self.atraso)
        codigo = (codigo or "").strip()
        duplicado = False
        if codigo:
            duplicado = await asyncio.to_thread(codigo_em_uso, self.db_path, codigo, self.ignorar_id)
        self.ultimo = ResultadoVerificacao(codigo=codigo, duplicado=duplicado)
        if duplicado:
            log_system_event("codigo_duplicado", {"codigo": codigo}, level="warning")
        return self.ultimo
