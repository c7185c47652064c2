from almoxarifado.domain.busca import buscar_itens, fuzzy_match, normalizar, similaridade

CATALOGO = [
    {"nome": "Papel Sulfite A4", "codigo": "7891000", "categoria": "Material de Escritório"},
    {"nome": "Detergente Neutro", "codigo": "7892000", "categoria": "Material de Limpeza"},
    {"nome": "Sabão em Pó", "codigo": "7893000", "categoria": "Material de Limpeza"},
]


def test_normalizar_remove_acentos_e_pontuacao():
    assert normalizar("  Sabão em Pó! ") == "sabao em po"
    assert normalizar(None) == ""


def test_similaridade():
    assert similaridade("Caneta", "caneta") == 1.0
    assert similaridade("", "caneta") == 0.0
    assert 0.6 <= similaridade("detergnte", "detergente") < 1.0


def test_fuzzy_match_tolera_erro_de_digitacao():
    assert fuzzy_match("Detergente Neutro", "detergnte")
    assert fuzzy_match("Sabão em Pó", "sabao")
    assert not fuzzy_match("Sabão em Pó", "grampeador")
    assert not fuzzy_match("", "x")


def test_buscar_itens():
    assert sorted(i["nome"] for i in buscar_itens(CATALOGO, "limpeza")) == ["Detergente Neutro", "Sabão em Pó"]
    assert [i["codigo"] for i in buscar_itens(CATALOGO, "7891")] == ["7891000"]
    assert buscar_itens(CATALOGO, "") == CATALOGO
