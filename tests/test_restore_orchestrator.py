"""Tests for the restore orchestrator, checkpoints, and resume."""

import ast
import pathlib
from unittest.mock import AsyncMock

import pytest

from db_restore.restore.checkpoint import (
    CheckpointStore,
    RestoreCheckpoint,
    TableProgress,
    fingerprint_document,
)
from db_restore.restore.models import BackupDocument, RestoreOptions
from db_restore.restore.orchestrator import restore_backup
from db_restore.restore.results import TableState

SRC_ROOT = pathlib.Path(__file__).resolve().parent.parent / "src" / "db_restore"


def _make_mock_store(fail_tables: set[str] | None = None) -> AsyncMock:
    """Store recording every call in ``store.events`` as ``(op, table, rows)``."""
    fail_tables = fail_tables or set()
    store = AsyncMock()
    store.events = []

    async def _delete_all(table: str, pk: str = "id") -> None:
        store.events.append(("delete", table, None))

    async def _insert_many(table: str, rows: list[dict]) -> int:
        store.events.append(("insert", table, rows))
        if table in fail_tables:
            raise RuntimeError(f"{table} insert rejected")
        return len(rows)

    store.delete_all = AsyncMock(side_effect=_delete_all)
    store.insert_many = AsyncMock(side_effect=_insert_many)
    return store


def _make_strict_store() -> AsyncMock:
    """Store that rejects any batch holding a row that is not a dict."""
    store = AsyncMock()

    async def _insert_many(table: str, rows: list) -> int:
        if not all(isinstance(row, dict) for row in rows):
            raise TypeError(f"{table} row is not an object")
        return len(rows)

    store.insert_many = AsyncMock(side_effect=_insert_many)
    return store


def _inserted_tables(store: AsyncMock) -> list[str]:
    tables: list[str] = []
    for op, table, _ in store.events:
        if op == "insert" and table not in tables:
            tables.append(table)
    return tables


def _doc(data: dict) -> BackupDocument:
    return BackupDocument(metadata={"createdAt": "2026-01-15"}, data=data)


class _Crash(Exception):
    pass


# ============================================================================
# Test: Scenarios
# ============================================================================


class TestRestoreScenarios:
    """End-to-end runs against a mock store."""

    async def test_parents_before_children(self) -> None:
        """Categories are inserted, with ids, before products, without ids."""
        store = _make_mock_store()
        doc = _doc({
            "products": [{"id": "p1", "title": "Bike", "category_id": 5}],
            "categories": [{"id": 5, "name": "Cars"}],
        })

        summary = await restore_backup(store, doc)

        assert store.events == [
            ("insert", "categories", [{"id": 5, "name": "Cars"}]),
            ("insert", "products", [{"title": "Bike", "category_id": 5}]),
        ]
        assert summary.to_response() == {
            "success": True,
            "message": "Restored 2 records across 2 tables",
            "results": {
                "categories": {"success": True, "count": 1},
                "products": {"success": True, "count": 1},
            },
            "backupMetadata": {"createdAt": "2026-01-15"},
        }

    async def test_batched_table(self) -> None:
        """250 messages are sent as three batches and all counted."""
        store = _make_mock_store()
        doc = _doc({"messages": [{"body": f"m{i}"} for i in range(250)]})

        summary = await restore_backup(store, doc, batch_size=100)

        sizes = [len(rows) for _, _, rows in store.events]
        assert sizes == [100, 100, 50]
        assert summary.per_table["messages"].to_response() == {
            "success": True,
            "count": 250,
        }

    async def test_subset_with_clearing(self) -> None:
        """Only the requested table is cleared and inserted."""
        store = _make_mock_store()
        doc = _doc({
            "products": [{"id": "p1"}, {"id": "p2"}],
            "profiles": [{"id": "u1"}],
        })

        summary = await restore_backup(
            store,
            doc,
            RestoreOptions(clear_existing=True, restore_tables=["products"]),
        )

        assert [(op, table) for op, table, _ in store.events] == [
            ("delete", "products"),
            ("insert", "products"),
        ]
        assert list(summary.per_table) == ["products"]
        assert summary.cleared_tables == ["products"]

    async def test_partial_batch_failure(self) -> None:
        """Batch 2 of 3 failing leaves a successful, annotated table."""
        store = _make_mock_store()
        calls = {"n": 0}

        async def _insert_many(table: str, rows: list[dict]) -> int:
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("violates foreign key constraint")
            return len(rows)

        store.insert_many = AsyncMock(side_effect=_insert_many)
        doc = _doc({"products": [{"title": str(i)} for i in range(250)]})

        summary = await restore_backup(store, doc, batch_size=100)

        assert store.insert_many.await_count == 3
        assert summary.per_table["products"].to_response() == {
            "success": True,
            "count": 150,
            "error": "1 batch error (partial restore)",
        }
        assert summary.overall_success is True

    async def test_requested_order_ignored(self) -> None:
        store = _make_mock_store()
        doc = _doc({"products": [{"id": "p"}], "categories": [{"id": 1}]})

        summary = await restore_backup(
            store, doc, RestoreOptions(restore_tables=["products", "categories"])
        )

        assert _inserted_tables(store) == ["categories", "products"]
        assert summary.plan == ["categories", "products"]


# ============================================================================
# Test: Ordering and Failure Isolation
# ============================================================================


class TestRestoreOrdering:
    """Verify clearing and insert ordering and per-table isolation."""

    async def test_all_deletes_before_any_insert(self) -> None:
        store = _make_mock_store()
        doc = _doc({
            "categories": [{"id": 1}],
            "profiles": [{"id": "u"}],
            "products": [{"id": "p"}],
            "favorites": [{"id": "f"}],
        })

        await restore_backup(store, doc, RestoreOptions(clear_existing=True))

        ops = [(op, table) for op, table, _ in store.events]
        assert ops == [
            ("delete", "favorites"),
            ("delete", "products"),
            ("delete", "profiles"),
            ("delete", "categories"),
            ("insert", "categories"),
            ("insert", "profiles"),
            ("insert", "products"),
            ("insert", "favorites"),
        ]

    async def test_no_clearing_unless_requested(self) -> None:
        store = _make_mock_store()
        await restore_backup(store, _doc({"products": [{"id": "p"}]}))
        store.delete_all.assert_not_awaited()

    async def test_clearing_error_does_not_fail_restore(self) -> None:
        store = _make_mock_store()
        store.delete_all = AsyncMock(side_effect=RuntimeError("rls"))

        summary = await restore_backup(
            store, _doc({"products": [{"id": "p"}]}), RestoreOptions(clear_existing=True)
        )

        assert summary.clearing_errors == {"products": "rls"}
        assert summary.overall_success is True
        store.insert_many.assert_awaited_once()

    async def test_failed_table_does_not_stop_later_tables(self) -> None:
        store = _make_mock_store(fail_tables={"products"})
        doc = _doc({
            "categories": [{"id": 1}],
            "products": [{"id": "p"}],
            "audit_logs": [{"id": "a"}],
        })

        summary = await restore_backup(store, doc)

        assert _inserted_tables(store) == ["categories", "products", "audit_logs"]
        body = summary.to_response()
        assert body["success"] is False
        assert body["failedTables"] == ["products"]
        assert body["results"]["products"] == {
            "success": False,
            "count": 0,
            "error": "products insert rejected",
        }
        assert body["results"]["audit_logs"]["success"] is True

    async def test_malformed_rows_fail_only_their_batch(self) -> None:
        """A non-object row is sent with its batch, and only that batch fails."""
        store = _make_strict_store()
        rows: list = [{"id": f"p{i}", "title": str(i)} for i in range(250)]
        rows[5] = None
        doc = _doc({"categories": [{"id": 1}], "products": rows})

        summary = await restore_backup(store, doc, batch_size=100)

        assert store.insert_many.await_count == 4
        assert summary.per_table["categories"].success is True
        products = summary.per_table["products"]
        assert products.state is TableState.PARTIAL
        assert products.to_response() == {
            "success": True,
            "count": 150,
            "error": "1 batch error (partial restore)",
        }
        assert summary.overall_success is True

    async def test_all_rows_malformed_fails_table(self) -> None:
        store = _make_strict_store()
        doc = _doc({"categories": [{"id": 1}], "products": ["not-a-row"]})

        summary = await restore_backup(store, doc)

        assert summary.failed_tables == ["products"]
        assert summary.per_table["products"].error == "products row is not an object"
        assert summary.per_table["categories"].success is True

    async def test_empty_and_non_list_tables(self) -> None:
        store = _make_mock_store()
        summary = await restore_backup(store, _doc({"products": [], "profiles": None}))

        store.insert_many.assert_not_awaited()
        assert summary.to_response()["results"] == {
            "profiles": {"success": True, "count": 0},
            "products": {"success": True, "count": 0},
        }

    async def test_alias_keys_restored_under_canonical_name(self) -> None:
        store = _make_mock_store()
        doc = _doc({"settings": [{"id": 1, "key": "site_name"}]})

        summary = await restore_backup(store, doc)

        assert store.events == [
            ("insert", "platform_settings", [{"id": 1, "key": "site_name"}])
        ]
        assert list(summary.per_table) == ["platform_settings"]

    async def test_state_transitions(self) -> None:
        store = _make_mock_store(fail_tables={"products"})
        doc = _doc({"categories": [{"id": 1}], "products": [{"id": "p"}]})
        transitions: list[tuple[str, TableState]] = []

        await restore_backup(
            store, doc, on_state=lambda table, state, _: transitions.append((table, state))
        )

        assert transitions == [
            ("categories", TableState.PENDING),
            ("products", TableState.PENDING),
            ("categories", TableState.RESTORING),
            ("categories", TableState.SUCCESS),
            ("products", TableState.RESTORING),
            ("products", TableState.FAILED),
        ]


# ============================================================================
# Test: Checkpoints
# ============================================================================


class TestCheckpointStore:
    """Verify checkpoint persistence."""

    def test_save_and_load(self, tmp_path: pathlib.Path) -> None:
        checkpoints = CheckpointStore(tmp_path)
        checkpoint = RestoreCheckpoint(target="staging", fingerprint="abc", plan=["products"])
        checkpoint.progress("products").next_offset = 200
        path = checkpoints.save(checkpoint)

        assert path.name == "restore-staging.checkpoint.json"
        loaded = checkpoints.load("staging", "abc")
        assert loaded is not None
        assert loaded.tables["products"].next_offset == 200

    def test_fingerprint_mismatch_ignored(self, tmp_path: pathlib.Path) -> None:
        checkpoints = CheckpointStore(tmp_path)
        checkpoints.save(RestoreCheckpoint(target="staging", fingerprint="abc"))
        assert checkpoints.load("staging", "other") is None

    def test_unreadable_checkpoint_ignored(self, tmp_path: pathlib.Path) -> None:
        checkpoints = CheckpointStore(tmp_path)
        checkpoints.path_for("staging").write_text("{broken")
        assert checkpoints.load("staging", "abc") is None

    def test_target_name_sanitized(self, tmp_path: pathlib.Path) -> None:
        path = CheckpointStore(tmp_path).path_for("https://x.supabase.co")
        assert path.parent == tmp_path
        assert "/" not in path.name

    def test_delete_missing_is_noop(self, tmp_path: pathlib.Path) -> None:
        CheckpointStore(tmp_path).delete("nothing")

    def test_fingerprint_ignores_metadata(self) -> None:
        a = BackupDocument(metadata={"v": 1}, data={"products": [{"id": 1}]})
        b = BackupDocument(metadata={"v": 2}, data={"products": [{"id": 1}]})
        c = BackupDocument(metadata={"v": 1}, data={"products": [{"id": 2}]})
        assert fingerprint_document(a) == fingerprint_document(b)
        assert fingerprint_document(a) != fingerprint_document(c)


class TestResume:
    """Verify resumed runs skip work already done."""

    async def test_checkpoint_removed_after_run(self, tmp_path: pathlib.Path) -> None:
        store = _make_mock_store()
        checkpoints = CheckpointStore(tmp_path)

        await restore_backup(
            store, _doc({"products": [{"id": "p"}]}), checkpoints=checkpoints, target="t"
        )

        assert not checkpoints.path_for("t").exists()

    async def test_checkpoint_kept_when_run_crashes(self, tmp_path: pathlib.Path) -> None:
        store = _make_mock_store()
        checkpoints = CheckpointStore(tmp_path)
        doc = _doc({"categories": [{"id": 1}], "products": [{"id": "p"}]})

        def crash(table: str, state: TableState, result) -> None:
            if table == "products" and state is TableState.RESTORING:
                raise _Crash("process killed")

        with pytest.raises(_Crash):
            await restore_backup(
                store, doc, checkpoints=checkpoints, target="t", on_state=crash
            )

        saved = checkpoints.load("t", fingerprint_document(doc))
        assert saved is not None
        assert saved.tables["categories"].completed is True
        assert saved.tables["categories"].inserted == 1

    async def test_resume_skips_completed_tables_and_batches(
        self, tmp_path: pathlib.Path
    ) -> None:
        doc = _doc({
            "categories": [{"id": 1}],
            "products": [{"title": str(i)} for i in range(250)],
        })
        checkpoints = CheckpointStore(tmp_path)
        checkpoint = RestoreCheckpoint(
            target="t",
            fingerprint=fingerprint_document(doc),
            plan=["categories", "products"],
            clear_existing=True,
            cleared=True,
            tables={
                "categories": TableProgress(
                    next_offset=1, attempted=1, inserted=1, batches=1, completed=True
                ),
                "products": TableProgress(
                    next_offset=200, attempted=200, inserted=200, batches=2
                ),
            },
        )
        checkpoints.save(checkpoint)
        store = _make_mock_store()

        summary = await restore_backup(
            store,
            doc,
            RestoreOptions(clear_existing=True, resume=True),
            batch_size=100,
            checkpoints=checkpoints,
            target="t",
        )

        store.delete_all.assert_not_awaited()
        assert store.events == [
            ("insert", "products", [{"title": str(i)} for i in range(200, 250)])
        ]
        assert summary.resumed is True
        assert summary.per_table["categories"].to_response() == {
            "success": True,
            "count": 1,
        }
        assert summary.per_table["products"].to_response() == {
            "success": True,
            "count": 250,
        }

    async def test_resume_without_checkpoint_runs_fresh(self, tmp_path: pathlib.Path) -> None:
        store = _make_mock_store()
        summary = await restore_backup(
            store,
            _doc({"products": [{"id": "p"}]}),
            RestoreOptions(clear_existing=True, resume=True),
            checkpoints=CheckpointStore(tmp_path),
            target="t",
        )

        assert summary.resumed is False
        store.delete_all.assert_awaited_once()

    async def test_resume_ignores_checkpoint_of_other_backup(
        self, tmp_path: pathlib.Path
    ) -> None:
        checkpoints = CheckpointStore(tmp_path)
        checkpoints.save(
            RestoreCheckpoint(
                target="t",
                fingerprint="different",
                tables={"products": TableProgress(next_offset=1, completed=True)},
            )
        )
        store = _make_mock_store()

        summary = await restore_backup(
            store,
            _doc({"products": [{"id": "p"}]}),
            RestoreOptions(resume=True),
            checkpoints=checkpoints,
            target="t",
        )

        assert summary.resumed is False
        store.insert_many.assert_awaited_once()


# ============================================================================
# Test: Engine Modules Do Not Print
# ============================================================================


class TestNoPrintInEngine:
    """Engine modules report through logging, never stdout."""

    @pytest.mark.parametrize(
        "module",
        sorted(p.name for p in (SRC_ROOT / "restore").glob("*.py")),
    )
    def test_no_print_calls(self, module: str) -> None:
        tree = ast.parse((SRC_ROOT / "restore" / module).read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
                assert node.func.id != "print", f"print() call in restore/{module}"
