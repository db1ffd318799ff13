import pytest
from pydantic import ValidationError

from envctl.core.errors import EnvctlError, InvalidNameError, ProfileCorruptedError
from envctl.core.models import Profile
from envctl.storage import ProfileStore
from envctl.storage.profile_store import validate_profile_name


@pytest.fixture
def store(tmp_path):
    return ProfileStore(tmp_path / "profiles")


def test_save_and_load_keeps_variable_order(store):
    store.save_profile(Profile(name="dev", variables={"ZED": "1", "ALPHA": "2", "MID": "3"}))
    loaded = store.load_profile("dev")
    assert list(loaded.variables) == ["ZED", "ALPHA", "MID"]


def test_save_refreshes_updated_at(store):
    profile = Profile(name="dev")
    before = profile.updated_at
    store.save_profile(profile)
    assert store.load_profile("dev").updated_at >= before


def test_save_leaves_no_temp_file(store):
    store.save_profile(Profile(name="dev"))
    assert sorted(p.name for p in store.profiles_dir.iterdir()) == ["dev.json"]


def test_load_missing_returns_none(store):
    assert store.load_profile("nope") is None
    assert store.load_profile("../escape") is None


def test_load_corrupted_raises(store):
    (store.profiles_dir / "bad.json").write_text("{not json")
    with pytest.raises(ProfileCorruptedError, match="Corrupted profile file") as exc:
        store.load_profile("bad")
    assert isinstance(exc.value, EnvctlError)
    assert exc.value.name == "bad"


def test_load_rejects_invalid_variable_name(store):
    (store.profiles_dir / "dev.json").write_text('{"name": "dev", "variables": {"X; rm -rf ~": "1"}}')
    with pytest.raises(ProfileCorruptedError):
        store.load_profile("dev")


@pytest.mark.parametrize("key", ["1ABC", "A-B", "A B", "$X", "", "A\n"])
def test_profile_rejects_invalid_variable_names(key):
    with pytest.raises(ValidationError, match="Invalid variable name"):
        Profile(name="dev", variables={key: "v"})


def test_delete(store):
    store.save_profile(Profile(name="dev"))
    assert store.delete_profile("dev") is True
    assert store.delete_profile("dev") is False
    assert not store.profile_exists("dev")


def test_list_sorted(store):
    for name in ("staging", "dev", "prod"):
        store.save_profile(Profile(name=name))
    assert store.list_profiles() == ["dev", "prod", "staging"]


@pytest.mark.parametrize("name", ["", "../x", "a/b", "-dash", "has space", "unknown"])
def test_invalid_names_rejected(name):
    with pytest.raises(InvalidNameError):
        validate_profile_name(name)


@pytest.mark.parametrize("name", ["dev", "my-app.prod", "Team_1"])
def test_valid_names(name):
    assert validate_profile_name(name) == name
