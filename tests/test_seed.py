import json

import pytest

from gateway_e2e.exceptions import SeedLoadError
from gateway_e2e.seed import DEFAULT_SEED_PATH, SeedCatalog, load_seed_catalog, resolve_seed_path


def _write(tmp_path, data):
    path = tmp_path / "seed.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return path


def test_catalog_derived_values(seed_file):
    catalog = load_seed_catalog(seed_file)

    assert len(catalog.users) == 4
    assert catalog.first_user.email == "admin@ugjb.com"
    assert catalog.last_user.email == "second-admin@ugjb.com"
    # First-appearance order
    assert catalog.roles == ("admin", "user", "manager")


def test_first_user_holding_a_role_represents_it(seed_file):
    catalog = load_seed_catalog(seed_file)

    assert catalog.user_by_role["admin"].email == "admin@ugjb.com"
    assert catalog.user_by_role["user"].email == "admin@ugjb.com"
    assert catalog.user_by_role["manager"].email == "manager@ugjb.com"
    assert [u.email for u in catalog.users_with_role("admin")] == [
        "admin@ugjb.com", "second-admin@ugjb.com",
    ]


def test_catalog_is_immutable(seed_file):
    catalog = load_seed_catalog(seed_file)

    with pytest.raises(TypeError):
        catalog.user_by_role["admin"] = catalog.last_user
    with pytest.raises(AttributeError):
        catalog.users = ()


def test_missing_file(tmp_path):
    with pytest.raises(SeedLoadError, match="not found"):
        load_seed_catalog(tmp_path / "missing.json")


def test_invalid_json(tmp_path):
    with pytest.raises(SeedLoadError, match="not valid JSON"):
        load_seed_catalog(_write(tmp_path, "{users: ["))


@pytest.mark.parametrize("data", [[], {"people": []}, {"users": "admin"}])
def test_wrong_shape(tmp_path, data):
    with pytest.raises(SeedLoadError, match="'users' array"):
        load_seed_catalog(_write(tmp_path, data))


def test_empty_users(tmp_path):
    with pytest.raises(SeedLoadError, match="no users"):
        load_seed_catalog(_write(tmp_path, {"users": []}))


def test_user_missing_field(tmp_path):
    data = {"users": [{"id": "1", "email": "a@ugjb.com", "password": "x", "roles": []}]}

    with pytest.raises(SeedLoadError, match="name"):
        load_seed_catalog(_write(tmp_path, data))


def test_roles_must_be_strings(tmp_path):
    data = {"users": [{"id": "1", "email": "a@ugjb.com", "password": "x", "name": "A", "roles": "admin"}]}

    with pytest.raises(SeedLoadError, match="invalid roles"):
        load_seed_catalog(_write(tmp_path, data))


def test_from_dict_without_file():
    catalog = SeedCatalog.from_dict({"users": [
        {"id": 7, "email": "a@ugjb.com", "password": "x", "name": "A", "roles": ["viewer"]},
    ]})

    assert catalog.first_user.id == "7"
    assert catalog.roles == ("viewer",)


def test_resolve_seed_path_precedence(monkeypatch, tmp_path):
    monkeypatch.delenv("SEED_DATA_PATH", raising=False)
    assert resolve_seed_path() == DEFAULT_SEED_PATH

    monkeypatch.setenv("SEED_DATA_PATH", str(tmp_path / "env.json"))
    assert resolve_seed_path() == tmp_path / "env.json"
    assert resolve_seed_path(tmp_path / "explicit.json") == tmp_path / "explicit.json"


def test_invalid_utf8(tmp_path):
    path = tmp_path / "seed.json"
    path.write_bytes(b'{"users": [{"name": "\xff\xfe"}]}')

    with pytest.raises(SeedLoadError, match="not valid UTF-8"):
        load_seed_catalog(path)


def test_directory_instead_of_file(tmp_path):
    with pytest.raises(SeedLoadError, match="could not be read"):
        load_seed_catalog(tmp_path)
