import json
import stat
import threading

from renewal_client.config import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY
from renewal_client.store import CredentialPair, FileCredentialStore, MemoryCredentialStore


def test_memory_store_get_set_remove():
    store = MemoryCredentialStore()

    store.set(ACCESS_TOKEN_KEY, "a1")
    assert store.get(ACCESS_TOKEN_KEY) == "a1"

    store.remove(ACCESS_TOKEN_KEY)
    store.remove(ACCESS_TOKEN_KEY)
    assert store.get(ACCESS_TOKEN_KEY) is None


def test_get_pair_requires_both_fields():
    store = MemoryCredentialStore()
    store.set(ACCESS_TOKEN_KEY, "a1")

    assert store.get_pair() is None

    store.set(REFRESH_TOKEN_KEY, "r1")
    assert store.get_pair() == CredentialPair("a1", "r1")


def test_clear_removes_both_fields():
    store = MemoryCredentialStore(CredentialPair("a1", "r1"))

    store.clear()

    assert store.get(ACCESS_TOKEN_KEY) is None
    assert store.get(REFRESH_TOKEN_KEY) is None


def test_pair_swap_is_never_observed_half_done():
    store = MemoryCredentialStore(CredentialPair("access-0", "refresh-0"))
    mismatches: list[CredentialPair] = []
    done = threading.Event()

    def reader() -> None:
        while not done.is_set():
            pair = store.get_pair()
            if pair.access_token.split("-")[1] != pair.refresh_token.split("-")[1]:
                mismatches.append(pair)

    thread = threading.Thread(target=reader)
    thread.start()
    for index in range(1, 2000):
        store.set_pair(CredentialPair(f"access-{index}", f"refresh-{index}"))
    done.set()
    thread.join()

    assert mismatches == []


def test_file_store_persists_pair_with_private_permissions(tmp_path):
    path = tmp_path / "nested" / "credentials.json"
    store = FileCredentialStore(path)

    store.set_pair(CredentialPair("a1", "r1"))

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "access_token": "a1",
        "refresh_token": "r1",
    }
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert FileCredentialStore(path).get_pair() == CredentialPair("a1", "r1")


def test_file_store_clear_keeps_unrelated_keys(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text(
        json.dumps({"access_token": "a1", "refresh_token": "r1", "user": "alice"}),
        encoding="utf-8",
    )
    store = FileCredentialStore(path)

    store.clear()

    assert store.get_pair() is None
    assert json.loads(path.read_text(encoding="utf-8")) == {"user": "alice"}


def test_file_store_clear_without_credentials_writes_nothing(tmp_path):
    path = tmp_path / "nested" / "credentials.json"
    store = FileCredentialStore(path)

    store.clear()

    assert not path.exists()
    assert not path.parent.exists()


def test_file_store_clear_leaves_file_without_credentials_untouched(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text('{"user": "alice"}', encoding="utf-8")
    store = FileCredentialStore(path)

    store.clear()

    assert path.read_text(encoding="utf-8") == '{"user": "alice"}'


def test_file_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("{not json", encoding="utf-8")
    store = FileCredentialStore(path)

    assert store.get(ACCESS_TOKEN_KEY) is None

    store.set(ACCESS_TOKEN_KEY, "a2")
    assert store.get(ACCESS_TOKEN_KEY) == "a2"
