import pytest

from almoxarifado.infra import logger


@pytest.fixture
def system_log(tmp_path, monkeypatch):
    arquivo = tmp_path / "system.log"
    sistema = logger.setup_logger("almoxarifado.test.system", str(arquivo))
    monkeypatch.setattr(logger, "ENABLE_LOGGING", True)
    monkeypatch.setitem(logger.LOG_FILES, "system", arquivo)
    monkeypatch.setattr(logger, "system_logger", sistema)
    yield arquivo
    for handler in sistema.handlers:
        handler.close()


def test_desligado_por_padrao(monkeypatch):
    monkeypatch.setattr(logger, "ENABLE_LOGGING", False)
    monkeypatch.setattr(logger, "ENABLE_OUTPUT", False)
    logger.log_system_event("ignorado")
    assert logger.get_log_summary("system") is None


def test_eventos_e_arquivos_no_log_do_sistema(system_log):
    logger.log_system_event("backup_gerado", {"itens": 2})
    logger.log_system_event("export_empty", {"mensagem": "Nenhum dado"}, level="warning")
    logger.log_file_operation("export", "saidas.csv", rows_processed=3)

    linhas = logger.get_log_summary("system", lines=2).splitlines()
    assert len(linhas) == 2
    assert "WARNING" in linhas[0] and "export_empty" in linhas[0]
    assert "FILE_EXPORT" in linhas[1] and "'rows_processed': 3" in linhas[1]


def test_log_inexistente(system_log):
    assert logger.get_log_summary("nao_existe") == "Log nao_existe não encontrado."
