import pytest

from schoolcache.core.exceptions import InvalidKeyError
from schoolcache.core.keys import build_key, key_params, query_param, type_of


def test_build_key_is_deterministic():
    assert build_key("dashboard", "u1", "s1") == build_key("dashboard", "u1", "s1")
    assert build_key("dashboard", "u1", "s1") == "dashboard:u1:s1"


def test_distinct_params_give_distinct_keys():
    assert build_key("dashboard", "u1", "s1") != build_key("dashboard", "u1", "s2")
    assert build_key("dashboard", "u1") != build_key("dashboard", "u1", "")


def test_no_params_yields_type_name():
    assert build_key("dashboard") == "dashboard"
    assert build_key("dashboard") != build_key("dashboard_rol")


def test_numbers_are_stringified():
    assert build_key("promedio_periodo", "st1", "s1", "math", 2, "2024") == "promedio_periodo:st1:s1:math:2:2024"


def test_query_objects_are_canonical():
    first = build_key("lista_mensajes", "u1", "s1", {"leido": False, "pagina": 2})
    second = build_key("lista_mensajes", "u1", "s1", {"pagina": 2, "leido": False})
    assert first == second
    assert first != build_key("lista_mensajes", "u1", "s1", {"pagina": 3, "leido": False})
    assert build_key("lista_mensajes", "u1", "s1", {}).startswith("lista_mensajes:u1:s1:")


def test_query_param_never_contains_delimiter():
    assert ":" not in query_param({"q": "a:b"})
    assert query_param({"q": "x"}) == query_param({"q": "x"})


@pytest.mark.parametrize("param", ["a:b", None])
def test_rejects_ambiguous_params(param):
    with pytest.raises(InvalidKeyError):
        build_key("dashboard", "u1", param)


@pytest.mark.parametrize("type_name", ["", "dash:board"])
def test_rejects_invalid_type_names(type_name):
    with pytest.raises(InvalidKeyError):
        build_key(type_name, "u1")


def test_invalid_key_error_is_a_value_error():
    with pytest.raises(ValueError):
        build_key("dashboard", "bad:param")


def test_type_and_params_are_recoverable_from_key():
    key = build_key("dashboard_rol", "u1", "s1", "ADMIN")
    assert type_of(key) == "dashboard_rol"
    assert key_params(key) == "u1:s1:ADMIN"
    assert key_params("dashboard") == ""
    assert type_of("dashboard") == "dashboard"
