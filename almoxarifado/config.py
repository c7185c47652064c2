# almoxarifado/config.py
"""
Configurações globais e valores padrão do almoxarifado.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("ALMOX_DB", os.path.join(os.getcwd(), "almoxarifado.db"))

# Unidades de medida aceitas no cadastro de itens
UNIDADES = ("UN", "KG", "LT", "MT", "CX", "PC")
UNIDADE_PADRAO = "UN"

# Sugestões para o campo livre de categoria
CATEGORIAS = (
    "Material de Escritório",
    "Material de Limpeza",
    "Alimentação",
    "Higiene",
    "Informática",
    "Manutenção",
    "Outros",
)

# Setor usado quando um pedido finalizado não informa destino
SETOR_PADRAO_PEDIDO = "PSF"


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    estoque_baixo_limite: float = 10.0  # quantidade <= limite => estoque baixo
    vencimento_proximo_dias: int = 30  # janela de alerta de validade
    atraso_verificacao_codigo: float = 0.5  # segundos de espera antes de consultar código
    max_tentativas_transacao: int = 5  # tentativas de gravação condicional por item
    recentes_limite: int = 5  # movimentações recentes no painel


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
