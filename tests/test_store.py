from datetime import datetime

import pytest

from almoxarifado.exceptions import ConflitoConcorrencia, ItemNaoEncontrado, RemoteStoreError
from almoxarifado.infra.migrations import apply_migrations
from almoxarifado.infra.repositories import ParamsRepo
from almoxarifado.infra.store import DocumentStore, Timestamp


@pytest.fixture
def store(db_path):
    apply_migrations(db_path)
    return DocumentStore(db_path)


def test_add_e_get_by_id(store):
    doc_id = store.add("items", {"nome": "Caneta", "quantidade": 3})
    doc = store.get_by_id("items", doc_id)
    assert doc["id"] == doc_id
    assert doc["versao"] == 1
    assert doc["nome"] == "Caneta"
    assert isinstance(doc["criado_em"], Timestamp)
    assert store.get_by_id("items", "nao-existe") is None


def test_update_faz_merge_e_incrementa_versao(store):
    doc_id = store.add("items", {"nome": "Caneta", "quantidade": 3})
    assert store.update("items", doc_id, {"quantidade": 5}) == 2
    doc = store.get_by_id("items", doc_id)
    assert doc["nome"] == "Caneta"
    assert doc["quantidade"] == 5
    assert isinstance(doc["atualizado_em"], Timestamp)


def test_update_condicional_recusa_versao_antiga(store):
    doc_id = store.add("items", {"quantidade": 3})
    store.update("items", doc_id, {"quantidade": 4}, versao_esperada=1)
    with pytest.raises(ConflitoConcorrencia):
        store.update("items", doc_id, {"quantidade": 99}, versao_esperada=1)
    doc = store.get_by_id("items", doc_id)
    assert doc["quantidade"] == 4
    assert doc["versao"] == 2


def test_update_documento_inexistente(store):
    with pytest.raises(ItemNaoEncontrado):
        store.update("items", "nao-existe", {"quantidade": 1})


def test_get_by_field_por_colecao(store):
    store.add("items", {"codigo": "789"})
    store.add("items", {"codigo": "123"})
    store.add("entries", {"codigo": "789"})
    docs = store.get_by_field("items", "codigo", "789")
    assert len(docs) == 1
    assert docs[0]["codigo"] == "789"


def test_query_by_date_range_intervalo_semiaberto(store):
    for dia in (1, 2, 3):
        store.add("exits", {"dia": dia, "criado_em": datetime(2026, 3, dia, 12, 0)})
    docs = store.query_by_date_range("exits", "criado_em", datetime(2026, 3, 1, 12, 0), datetime(2026, 3, 3, 12, 0))
    assert [d["dia"] for d in docs] == [1, 2]


def test_data_volta_como_timestamp(store):
    quando = datetime(2026, 5, 4, 10, 11, 12)
    doc_id = store.add("entries", {"data": Timestamp(quando)})
    assert store.get_by_id("entries", doc_id)["data"].to_date() == quando


def test_falha_do_sqlite_vira_remote_store_error(tmp_path):
    store = DocumentStore(str(tmp_path / "sem_migracao.sqlite"))
    with pytest.raises(RemoteStoreError) as exc:
        store.get_all("items")
    assert "indisponível" in exc.value.mensagem


def test_params_config_sobrepoe_padroes(db_path):
    apply_migrations(db_path)
    repo = ParamsRepo(db_path)
    repo.set_many([("estoque_baixo_limite", "3"), ("vencimento_proximo_dias", "15")])
    cfg = repo.config()
    assert cfg.estoque_baixo_limite == 3.0
    assert cfg.vencimento_proximo_dias == 15
    assert cfg.recentes_limite == 5


def test_update_and_add_grava_os_dois(store):
    item_id = store.add("items", {"quantidade": 10})
    versao, saida_id = store.update_and_add("items", item_id, {"quantidade": 6}, 1, "exits", {"quantidade": 4})
    assert versao == 2
    assert store.get_by_id("items", item_id)["quantidade"] == 6
    assert store.get_by_id("exits", saida_id)["quantidade"] == 4


def test_update_and_add_em_conflito_nao_grava_registro(store):
    item_id = store.add("items", {"quantidade": 10})
    store.update("items", item_id, {"quantidade": 9})
    with pytest.raises(ConflitoConcorrencia):
        store.update_and_add("items", item_id, {"quantidade": 6}, 1, "exits", {"quantidade": 4})
    assert store.get_by_id("items", item_id)["quantidade"] == 9
    assert store.get_all("exits") == []


def test_update_and_add_desfaz_update_se_insert_falhar(store, request):
    item_id = store.add("items", {"quantidade": 10})
    request.getfixturevalue("insert_falha")
    with pytest.raises(RemoteStoreError):
        store.update_and_add("items", item_id, {"quantidade": 6}, 1, "exits", {"quantidade": 4})
    item = store.get_by_id("items", item_id)
    assert item["quantidade"] == 10
    assert item["versao"] == 1
