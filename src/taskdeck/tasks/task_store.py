# tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterable, Iterator
from pathlib import Path

from .task_models import ChecklistItem, Epic, Tag, Task

logger = logging.getLogger(__name__)

# kind -> table; only these tables carry a dense "position" column.
_ORDERED_TABLES = {
    "task": "tasks",
    "tag": "tags",
    "epic": "epics",
    "checklist_item": "checklist_items",
}


class StorageError(RuntimeError):
    """SQLite failure surfaced by TaskStore (I/O, locking, corrupt file)."""


class TaskStore:
    """
    SQLite entity store for tasks, tags, epics and checklist items.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing task columns
    - add columns with ALTER TABLE only when needed

    Referential actions are explicit in the delete methods (no ON DELETE
    clauses): deleting a task removes its checklist items and tag links,
    deleting a tag removes its links, deleting an epic clears tasks.epic_id.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except StorageError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """
        Shutdown hook: refresh query-planner statistics for the indexes.

        Connections are per call, so there is nothing to release; SQLite
        recommends running PRAGMA optimize once before an application exits.
        """
        with self._connect() as conn:
            conn.execute("PRAGMA optimize")
        logger.debug("TaskStore closed db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """One short-lived connection = one transaction; sqlite3 errors become StorageError."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"cannot open {self._db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            with contextlib.suppress(sqlite3.Error):
                conn.rollback()
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    position INTEGER NOT NULL DEFAULT 0,
                    total_time_spent REAL NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    completed_at REAL,
                    epic_id TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tags (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    color_index INTEGER NOT NULL DEFAULT 0,
                    position INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS epics (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS checklist_items (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    position INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_tags (
                    task_id TEXT NOT NULL,
                    tag_id TEXT NOT NULL,
                    PRIMARY KEY (task_id, tag_id)
                )
                """
            )

            # Migrations (safe): add missing task columns from older files.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("total_time_spent", "REAL NOT NULL DEFAULT 0")
            add_col("completed_at", "REAL")
            add_col("epic_id", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_active ON tasks(is_completed, position)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_epic ON tasks(epic_id)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_checklist_task ON checklist_items(task_id, position)"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_task_tags_tag ON task_tags(tag_id)")

    @staticmethod
    def _row_to_task(row: sqlite3.Row, tag_ids: set[str] | None = None) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            is_completed=bool(row["is_completed"]),
            order=int(row["position"] or 0),
            total_time_spent=float(row["total_time_spent"] or 0.0),
            created_at=float(row["created_at"] or 0.0),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            epic_id=row["epic_id"],
            tag_ids=set(tag_ids or ()),
        )

    @staticmethod
    def _row_to_tag(row: sqlite3.Row) -> Tag:
        return Tag(
            id=str(row["id"]),
            name=str(row["name"] or ""),
            color_index=int(row["color_index"] or 0),
            order=int(row["position"] or 0),
        )

    @staticmethod
    def _row_to_epic(row: sqlite3.Row) -> Epic:
        return Epic(id=str(row["id"]), name=str(row["name"] or ""), order=int(row["position"] or 0))

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ChecklistItem:
        return ChecklistItem(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            title=str(row["title"] or ""),
            is_completed=bool(row["is_completed"]),
            order=int(row["position"] or 0),
        )

    @staticmethod
    def _load_tag_ids(conn: sqlite3.Connection, task_ids: list[str]) -> dict[str, set[str]]:
        out: dict[str, set[str]] = {tid: set() for tid in task_ids}
        if not task_ids:
            return out
        placeholders = ",".join("?" for _ in task_ids)
        cur = conn.execute(
            f"SELECT task_id, tag_id FROM task_tags WHERE task_id IN ({placeholders})",
            task_ids,
        )
        for row in cur.fetchall():
            out.setdefault(str(row["task_id"]), set()).add(str(row["tag_id"]))
        return out

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def insert_task(self, task: Task) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, title, description, is_completed, position,
                    total_time_spent, created_at, completed_at, epic_id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.title,
                    task.description,
                    int(task.is_completed),
                    int(task.order),
                    float(task.total_time_spent),
                    float(task.created_at),
                    task.completed_at,
                    task.epic_id,
                ),
            )
            conn.executemany(
                "INSERT OR IGNORE INTO task_tags(task_id, tag_id) VALUES (?, ?)",
                [(task.id, tag_id) for tag_id in task.tag_ids],
            )
        logger.debug("Task inserted id=%s order=%s", task.id, task.order)

    def update_task(self, task: Task) -> None:
        """Write scalar fields and epic link; tag links go through add/remove_task_tag."""
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE tasks
                SET title = ?,
                    description = ?,
                    is_completed = ?,
                    position = ?,
                    total_time_spent = ?,
                    completed_at = ?,
                    epic_id = ?
                WHERE id = ?
                """,
                (
                    task.title,
                    task.description,
                    int(task.is_completed),
                    int(task.order),
                    float(task.total_time_spent),
                    task.completed_at,
                    task.epic_id,
                    task.id,
                ),
            )

    def get_task(self, task_id: str) -> Task | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                return None
            tag_ids = self._load_tag_ids(conn, [task_id])
            return self._row_to_task(row, tag_ids.get(task_id))

    def list_tasks(
        self,
        *,
        completed: bool | None = None,
        epic_id: str | None = None,
    ) -> list[Task]:
        """
        List tasks sorted by position, then creation time.

        completed=None returns both active and completed tasks.
        """
        clauses: list[str] = []
        params: list[object] = []
        if completed is not None:
            clauses.append("is_completed = ?")
            params.append(int(completed))
        if epic_id is not None:
            clauses.append("epic_id = ?")
            params.append(epic_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM tasks {where} ORDER BY position ASC, created_at ASC",
                params,
            ).fetchall()
            tag_ids = self._load_tag_ids(conn, [str(r["id"]) for r in rows])
            return [self._row_to_task(r, tag_ids.get(str(r["id"]))) for r in rows]

    def delete_task(self, task_id: str) -> bool:
        """Delete a task, cascading to its checklist items and tag links."""
        with self._connect() as conn:
            items = conn.execute("DELETE FROM checklist_items WHERE task_id = ?", (task_id,)).rowcount
            conn.execute("DELETE FROM task_tags WHERE task_id = ?", (task_id,))
            deleted = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,)).rowcount == 1
        logger.debug("Task deleted id=%s found=%s checklist_items=%s", task_id, deleted, items)
        return deleted

    # ---- tag links ----

    def add_task_tag(self, task_id: str, tag_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO task_tags(task_id, tag_id) VALUES (?, ?)",
                (task_id, tag_id),
            )

    def remove_task_tag(self, task_id: str, tag_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM task_tags WHERE task_id = ? AND tag_id = ?", (task_id, tag_id))

    def list_task_ids_for_tag(self, tag_id: str) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT task_id FROM task_tags WHERE tag_id = ? ORDER BY task_id", (tag_id,)
            ).fetchall()
            return [str(r["task_id"]) for r in rows]

    # ---- tags ----

    def insert_tag(self, tag: Tag) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO tags(id, name, color_index, position) VALUES (?, ?, ?, ?)",
                (tag.id, tag.name, int(tag.color_index), int(tag.order)),
            )

    def update_tag(self, tag: Tag) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE tags SET name = ?, color_index = ?, position = ? WHERE id = ?",
                (tag.name, int(tag.color_index), int(tag.order), tag.id),
            )

    def get_tag(self, tag_id: str) -> Tag | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tags WHERE id = ?", (tag_id,)).fetchone()
            return self._row_to_tag(row) if row else None

    def list_tags(self) -> list[Tag]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM tags ORDER BY position ASC, name ASC").fetchall()
            return [self._row_to_tag(r) for r in rows]

    def delete_tag(self, tag_id: str) -> bool:
        """Delete a tag; tasks keep existing, only their links are removed."""
        with self._connect() as conn:
            links = conn.execute("DELETE FROM task_tags WHERE tag_id = ?", (tag_id,)).rowcount
            deleted = conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,)).rowcount == 1
        logger.debug("Tag deleted id=%s found=%s links=%s", tag_id, deleted, links)
        return deleted

    # ---- epics ----

    def insert_epic(self, epic: Epic) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO epics(id, name, position) VALUES (?, ?, ?)",
                (epic.id, epic.name, int(epic.order)),
            )

    def update_epic(self, epic: Epic) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE epics SET name = ?, position = ? WHERE id = ?",
                (epic.name, int(epic.order), epic.id),
            )

    def get_epic(self, epic_id: str) -> Epic | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM epics WHERE id = ?", (epic_id,)).fetchone()
            return self._row_to_epic(row) if row else None

    def list_epics(self) -> list[Epic]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM epics ORDER BY position ASC, name ASC").fetchall()
            return [self._row_to_epic(r) for r in rows]

    def delete_epic(self, epic_id: str) -> bool:
        """Delete an epic; its tasks stay, with epic_id cleared."""
        with self._connect() as conn:
            cleared = conn.execute(
                "UPDATE tasks SET epic_id = NULL WHERE epic_id = ?", (epic_id,)
            ).rowcount
            deleted = conn.execute("DELETE FROM epics WHERE id = ?", (epic_id,)).rowcount == 1
        logger.debug("Epic deleted id=%s found=%s cleared_tasks=%s", epic_id, deleted, cleared)
        return deleted

    # ---- checklist items ----

    def insert_checklist_item(self, item: ChecklistItem) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO checklist_items(id, task_id, title, is_completed, position)
                VALUES (?, ?, ?, ?, ?)
                """,
                (item.id, item.task_id, item.title, int(item.is_completed), int(item.order)),
            )

    def update_checklist_item(self, item: ChecklistItem) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE checklist_items
                SET title = ?, is_completed = ?, position = ?
                WHERE id = ?
                """,
                (item.title, int(item.is_completed), int(item.order), item.id),
            )

    def get_checklist_item(self, item_id: str) -> ChecklistItem | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM checklist_items WHERE id = ?", (item_id,)).fetchone()
            return self._row_to_item(row) if row else None

    def list_checklist_items(self, task_id: str) -> list[ChecklistItem]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM checklist_items WHERE task_id = ? ORDER BY position ASC",
                (task_id,),
            ).fetchall()
            return [self._row_to_item(r) for r in rows]

    def delete_checklist_item(self, item_id: str) -> bool:
        with self._connect() as conn:
            return conn.execute("DELETE FROM checklist_items WHERE id = ?", (item_id,)).rowcount == 1

    # ---- ordering ----

    def set_orders(self, kind: str, pairs: Iterable[tuple[str, int]]) -> int:
        """
        Rewrite the position column for many rows in one transaction.

        kind: "task" | "tag" | "epic" | "checklist_item"
        Returns the number of rows touched.
        """
        table = _ORDERED_TABLES.get(kind)
        if table is None:
            raise ValueError(f"unknown ordered kind: {kind!r}")
        rows = [(int(order), str(entity_id)) for entity_id, order in pairs]
        if not rows:
            return 0
        with self._connect() as conn:
            conn.executemany(f"UPDATE {table} SET position = ? WHERE id = ?", rows)
        return len(rows)
