from datetime import date, datetime

import pytest

from almoxarifado.adapters.parsers import parse_data, parse_quantidade, parse_quantidade_unidade


@pytest.mark.parametrize(
    "txt,exp_num,exp_unit",
    [
        ("5,5 kg", 5.5, "KG"),
        ("2 CX", 2.0, "CX"),
        ("1.234,5", 1234.5, None),
        ("1,234.5 lt", 1234.5, "LT"),
        ("12", 12.0, None),
        (7, 7.0, None),
        ("abc", None, None),
        ("1.2.3", None, None),
        ("", None, None),
        (None, None, None),
    ],
)
def test_parse_quantidade_unidade(txt, exp_num, exp_unit):
    num, unit = parse_quantidade_unidade(txt)
    assert num == exp_num
    assert unit == exp_unit


def test_parse_quantidade_negativa_passa_para_validacao():
    assert parse_quantidade("-3") == -3.0


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("31/12/2025", "2025-12-31"),
        ("2025-12-31", "2025-12-31"),
        ("31-12-2025", "2025-12-31"),
        ("31/12/25", "2025-12-31"),
        ("2025-12-31 00:00:00", "2025-12-31"),
        (datetime(2025, 12, 31, 15, 0), "2025-12-31"),
        (date(2025, 12, 31), "2025-12-31"),
        ("31/02/2025", None),
        ("amanhã", None),
        ("  ", None),
        (None, None),
    ],
)
def test_parse_data(txt, esperado):
    assert parse_data(txt) == esperado
