from __future__ import annotations

from pathlib import Path

import pyarrow.parquet as pq
import pytest

from trellis.api import ApiSnapshot, ElementEntry, build_snapshot
from trellis.core.errors import VersionMismatch
from trellis.core.versioning import API_V
from trellis.dynamic import Group
from trellis.io import IoConfigError, IoReadError, Store, TrellisSettings
from trellis.state import StateDocument, StateEngine


@pytest.fixture
def store(tmp_path: Path) -> Store:
    return Store(TrellisSettings(root_dir=str(tmp_path)))


def test_state_document_round_trip(store: Store, tmp_path: Path) -> None:
    doc = StateDocument.from_state({"sim.model.count": 3, "sim.model.name": "ada"})

    summary = store.save_state("checkpoint", doc)

    assert summary["path"] == str(tmp_path / "state" / "checkpoint.json")
    assert summary["entries"] == 2
    assert summary["fingerprint"] == doc.fingerprint()
    assert store.load_state("checkpoint") == doc
    assert store.state_names() == ["checkpoint"]


def test_api_snapshot_round_trip(store: Store, api_ball_group: Group) -> None:
    snapshot = build_snapshot(api_ball_group.registry)

    summary = store.save_api("baseline", snapshot)
    loaded = store.load_api("baseline")

    assert summary["elements"] == len(snapshot.elements)
    assert loaded == snapshot
    assert loaded.fingerprint() == summary["fingerprint"]
    assert store.api_names() == ["baseline"]


def test_api_snapshot_embeds_metadata(store: Store) -> None:
    snapshot = ApiSnapshot(
        elements={"sim.model.a": ElementEntry(type_name="NumberIO", extra={"unit": "mm"})}
    )
    path = store.save_api("small", snapshot)["path"]

    meta = pq.read_schema(path).metadata
    assert meta[b"trellis_api_version"] == snapshot.version.encode()
    assert meta[b"trellis_api_fingerprint"] == snapshot.fingerprint().encode()
    assert store.load_api("small").elements["sim.model.a"].extra == {"unit": "mm"}


def test_missing_documents(store: Store) -> None:
    with pytest.raises(IoReadError, match="not found"):
        store.load_state("nope")
    with pytest.raises(IoReadError, match="not found"):
        store.load_api("nope")
    assert store.state_names() == []
    assert store.api_names() == []


def test_malformed_state_document(store: Store, tmp_path: Path) -> None:
    (tmp_path / "state").mkdir()
    (tmp_path / "state" / "broken.json").write_text("{not json")
    with pytest.raises(IoReadError, match="malformed"):
        store.load_state("broken")


def test_incompatible_versions_are_rejected(store: Store) -> None:
    future = f"{API_V.major + 1}.0@{API_V.date}"
    store.save_state("future", StateDocument(version=future, state={}))
    store.save_api("future", ApiSnapshot(version=future))

    with pytest.raises(VersionMismatch):
        store.load_state("future")
    with pytest.raises(VersionMismatch):
        store.load_api("future")


@pytest.mark.parametrize("name", ["", "..", "a/b", "x y"])
def test_illegal_names(store: Store, name: str) -> None:
    with pytest.raises(IoConfigError, match="illegal document name"):
        store.save_state(name, StateDocument.from_state({}))


def test_registry_state_round_trip(store: Store, ball_group: Group, selection) -> None:
    ball = ball_group.create_next_element()
    ball.x = 4
    selection.target = ball
    engine = StateEngine(ball_group.registry)
    store.save_registry_state(engine, "run")

    ball_group.clear()
    selection.target = None
    report = store.restore_registry_state(engine, "run")

    restored = ball_group.get_element(0)
    assert report.created == ("sim.model.ballGroup.ball_0",)
    assert restored.x == 4
    assert selection.target is restored
