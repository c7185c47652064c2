from pathlib import Path

import pytest
from typer.testing import CliRunner

from almoxarifado.adapters.cli import app

from conftest import ADMIN_EMAIL, SENHA, USUARIO_EMAIL

runner = CliRunner()


@pytest.fixture
def banco(tmp_path: Path) -> str:
    db_path = str(tmp_path / "almox_cli.sqlite")
    result = runner.invoke(app, ["usuarios", "init-admin", "--email", ADMIN_EMAIL, "--senha", SENHA, "--db", db_path])
    assert result.exit_code == 0, result.output
    return db_path


def _rodar(banco: str, *args: str, email: str = ADMIN_EMAIL):
    return runner.invoke(app, [*args, "--db", banco, "--email", email, "--senha", SENHA])


def test_cli_migrate_and_params(tmp_path: Path):
    db_path = str(tmp_path / "params.sqlite")
    result = runner.invoke(app, ["migrate", "--db", db_path])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["params", "get", "estoque_baixo_limite", "--db", db_path])
    assert result.stdout.strip() == "(None)"

    result = runner.invoke(app, ["params", "set", "--db", db_path, "--estoque-baixo-limite", "5",
                                 "--vencimento-proximo-dias", "15"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["params", "get", "vencimento_proximo_dias", "--db", db_path])
    assert result.stdout.strip() == "15"

    result = runner.invoke(app, ["params", "show", "--db", db_path])
    assert result.exit_code == 0, result.output


def test_cli_params_set_sem_valores(tmp_path: Path):
    result = runner.invoke(app, ["params", "set", "--db", str(tmp_path / "x.sqlite")])
    assert result.exit_code == 1


def test_cli_exige_credenciais_validas(banco):
    result = runner.invoke(app, ["dashboard", "--db", banco])
    assert result.exit_code == 1

    result = runner.invoke(app, ["dashboard", "--db", banco, "--email", ADMIN_EMAIL, "--senha", "errada"])
    assert result.exit_code == 1
    assert "Email ou senha incorretos" in result.output


def test_cli_entrada_saida_e_historico(banco, tmp_path: Path):
    result = _rodar(banco, "entrada", "--codigo", "789", "--nome", "Luva", "--quantidade", "2,5",
                    "--validade", "31/12/2030")
    assert result.exit_code == 0, result.output
    result = _rodar(banco, "entrada", "--codigo", "789", "--quantidade", "10")
    assert result.exit_code == 0, result.output

    result = _rodar(banco, "saida", "--codigo", "789", "--quantidade", "3", "--setor", "UBS Centro")
    assert result.exit_code == 0, result.output

    result = _rodar(banco, "saida", "--codigo", "789", "--quantidade", "100", "--setor", "UBS Centro")
    assert result.exit_code == 1
    assert "Estoque insuficiente" in result.output

    destino = tmp_path / "saidas.csv"
    result = _rodar(banco, "historico", "saidas", "--setor", "ubs", "--csv", str(destino))
    assert result.exit_code == 0, result.output
    linhas = destino.read_text(encoding="utf-8-sig").splitlines()
    assert linhas[0].startswith('"Código","Quantidade","Setor Destino"')
    assert linhas[1].startswith('"789","3","UBS Centro"')

    result = _rodar(banco, "historico", "entradas", "--codigo", "000", "--csv", str(tmp_path / "vazio.csv"))
    assert result.exit_code == 1
    assert "Nenhum dado para exportar" in result.output
    assert not (tmp_path / "vazio.csv").exists()


def test_cli_item_e_codigo_duplicado(banco):
    result = _rodar(banco, "item", "novo", "--nome", "Caneta Azul", "--codigo", "555", "--quantidade", "4")
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["item", "verificar-codigo", "555", "--db", banco])
    assert result.exit_code == 1
    result = runner.invoke(app, ["item", "verificar-codigo", "556", "--db", banco])
    assert result.exit_code == 0
    assert "Código disponível" in result.output

    result = _rodar(banco, "item", "novo", "--nome", "Outra", "--codigo", "555")
    assert result.exit_code == 1
    assert "Já existe um item com este código de barras!" in result.output


def test_cli_fluxo_de_pedido(banco):
    assert _rodar(banco, "item", "novo", "--nome", "Papel", "--codigo", "P1", "--quantidade", "10").exit_code == 0
    result = _rodar(banco, "usuarios", "criar", USUARIO_EMAIL, "--nova-senha", SENHA)
    assert result.exit_code == 0, result.output

    result = _rodar(banco, "pedido", "criar", "--item", "P1:4", "--setor", "Escola", email=USUARIO_EMAIL)
    assert result.exit_code == 0, result.output
    pedido_id = result.output.strip().split("Pedido criado: ")[1]

    result = _rodar(banco, "pedido", "aprovar", pedido_id, email=USUARIO_EMAIL)
    assert result.exit_code == 1

    assert _rodar(banco, "pedido", "aprovar", pedido_id).exit_code == 0
    result = _rodar(banco, "pedido", "finalizar", pedido_id)
    assert result.exit_code == 0, result.output
    assert "1 saída(s)" in result.output


def test_cli_backup(banco, tmp_path: Path):
    assert _rodar(banco, "entrada", "--codigo", "1", "--nome", "Sal", "--quantidade", "3").exit_code == 0
    destino = tmp_path / "backup.zip"
    result = _rodar(banco, "backup", str(destino))
    assert result.exit_code == 0, result.output
    assert destino.exists()
    assert "itens=1" in result.output


def test_cli_logs_desativados():
    result = runner.invoke(app, ["logs", "system"])
    assert result.exit_code == 1
    assert "ALMOX_LOGGING" in result.output
