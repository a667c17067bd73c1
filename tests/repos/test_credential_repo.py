from __future__ import annotations

import datetime
import json
from pathlib import Path

import pytest

from app.models.credential import CredentialRecord
from app.repos.credential_repo import (
    CredentialAlreadyExistsError,
    CredentialStorageError,
    JsonFileCredentialRepo,
)

T0 = datetime.datetime(2026, 10, 19, 12, 0, 0, 123456, tzinfo=datetime.UTC)


def _record(cid: str = "cred-101", worker: str = "worker-1") -> CredentialRecord:
    return CredentialRecord(id=cid, worker_id=worker, issued_at=T0)


def _loaded(path: Path) -> JsonFileCredentialRepo:
    repo = JsonFileCredentialRepo(path)
    repo.load()
    return repo


# ---- load ----


def test_load_missing_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    repo = _loaded(path)
    assert len(repo) == 0
    assert not path.exists()


def test_load_blank_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("  \n")
    assert len(_loaded(path)) == 0


def test_load_empty_list(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("[]")
    assert len(_loaded(path)) == 0


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '{"cred-101": {}}',
        '[{"id": "cred-101", "worker_id": "worker-1"}]',
        '[{"id": "", "worker_id": "worker-1", "issued_at": "2026-10-19T12:00:00Z"}]',
        '[{"id": "cred-101", "worker_id": "worker-1", "issued_at": "yesterday"}]',
    ],
)
def test_load_rejects_malformed_file(tmp_path: Path, content: str) -> None:
    path = tmp_path / "credentials.json"
    path.write_text(content)
    repo = JsonFileCredentialRepo(path)
    with pytest.raises(CredentialStorageError, match="malformed"):
        repo.load()


def test_load_rejects_duplicate_ids(tmp_path: Path) -> None:
    row = {"id": "cred-101", "worker_id": "worker-1", "issued_at": T0.isoformat()}
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps([row, row]))
    with pytest.raises(CredentialStorageError, match="duplicate id"):
        JsonFileCredentialRepo(path).load()


def test_load_rejects_unreadable_path(tmp_path: Path) -> None:
    # A directory where the file should be exists but can't be read.
    path = tmp_path / "credentials.json"
    path.mkdir()
    with pytest.raises(CredentialStorageError, match="cannot read"):
        JsonFileCredentialRepo(path).load()


# ---- put / get / exists ----


def test_put_makes_record_visible(tmp_path: Path) -> None:
    repo = _loaded(tmp_path / "credentials.json")
    record = _record()
    repo.put(record)

    assert repo.exists("cred-101") is True
    assert repo.get("cred-101") == record
    assert len(repo) == 1


def test_get_unknown_returns_none(tmp_path: Path) -> None:
    repo = _loaded(tmp_path / "credentials.json")
    assert repo.get("cred-999") is None
    assert repo.exists("cred-999") is False


def test_put_writes_through_to_disk(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "credentials.json"
    repo = _loaded(path)
    repo.put(_record())

    rows = json.loads(path.read_text())
    assert len(rows) == 1
    assert rows[0]["id"] == "cred-101"
    assert rows[0]["worker_id"] == "worker-1"
    assert not path.with_name("credentials.json.tmp").exists()


def test_put_rejects_existing_id(tmp_path: Path) -> None:
    repo = _loaded(tmp_path / "credentials.json")
    original = _record(worker="worker-1")
    repo.put(original)

    with pytest.raises(CredentialAlreadyExistsError):
        repo.put(_record(worker="worker-2"))
    assert repo.get("cred-101") == original


def test_put_rolls_back_when_persist_fails(tmp_path: Path) -> None:
    # A regular file in place of the parent directory makes every write fail.
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    repo = _loaded(blocker / "credentials.json")

    with pytest.raises(CredentialStorageError, match="cannot write"):
        repo.put(_record())

    assert repo.exists("cred-101") is False
    assert len(repo) == 0


def test_put_rolls_back_on_unexpected_persist_error(tmp_path: Path) -> None:
    class _BadSerializerRepo(JsonFileCredentialRepo):
        def _persist(self) -> None:
            raise ValueError("cannot serialize")

    repo = _BadSerializerRepo(tmp_path / "credentials.json")
    repo.load()

    with pytest.raises(ValueError, match="cannot serialize"):
        repo.put(_record())

    assert repo.exists("cred-101") is False
    assert len(repo) == 0


# ---- durability ----


def test_reload_preserves_records_exactly(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    repo = _loaded(path)
    records = [
        _record("cred-101", "worker-1"),
        CredentialRecord(
            id="cred-102",
            worker_id="worker-2",
            issued_at=T0 + datetime.timedelta(seconds=5),
        ),
    ]
    for r in records:
        repo.put(r)

    reloaded = _loaded(path)
    assert len(reloaded) == 2
    for r in records:
        assert reloaded.get(r.id) == r
