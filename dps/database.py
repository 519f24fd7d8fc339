from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Iterable, Sequence
from urllib.parse import urlparse

import aiosqlite

from dps.config import COMPANY_NAME, DATABASE_MAX_CONNECTIONS, DATABASE_PATH, DATABASE_URL, SEED_DEMO_PATIENTS
from dps.models.header import HeaderInfo
from dps.models.patient import Patient, TriageStatus

try:  # Optional: only required when DATABASE_URL is set (Postgres)
    import asyncpg  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    asyncpg = None

logger = logging.getLogger(__name__)


class DatabaseAdapter:
    engine: str

    async def execute(self, query: str, params: Sequence | None = None) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_one(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_all(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def commit(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executescript(self, script: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class SQLiteAdapter(DatabaseAdapter):
    conn: aiosqlite.Connection
    engine: str = "sqlite"

    async def execute(self, query: str, params: Sequence | None = None) -> None:
        await self.conn.execute(query, params or ())

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        await self.conn.executemany(query, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchone()

    async def fetch_all(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchall()

    async def commit(self) -> None:
        await self.conn.commit()

    async def close(self) -> None:
        await self.conn.close()

    async def executescript(self, script: str) -> None:
        await self.conn.executescript(script)


@dataclass
class PostgresAdapter(DatabaseAdapter):
    pool: "asyncpg.Pool"  # type: ignore[name-defined]
    engine: str = "postgres"

    @staticmethod
    def _translate_query(query: str) -> str:
        # ? placeholders -> $1, $2, ...
        if "$1" in query:
            return query
        idx = 1
        out = []
        for ch in query:
            if ch == "?":
                out.append(f"${idx}")
                idx += 1
            else:
                out.append(ch)
        return "".join(out)

    async def execute(self, query: str, params: Sequence | None = None) -> None:
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            await conn.execute(q, *(params or ()))

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            await conn.executemany(q, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(q, *(params or ()))

    async def fetch_all(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetch(q, *(params or ()))

    async def commit(self) -> None:
        # asyncpg autocommits per statement unless an explicit transaction is used.
        return

    async def close(self) -> None:
        await self.pool.close()

    async def executescript(self, script: str) -> None:
        # Not supported for Postgres; callers should split statements.
        raise NotImplementedError


_db: DatabaseAdapter | None = None


async def get_db() -> DatabaseAdapter:
    global _db
    if _db is None:
        if DATABASE_URL and not DATABASE_URL.startswith("sqlite"):
            if asyncpg is None:
                raise RuntimeError(
                    "DATABASE_URL is set but asyncpg is not installed. "
                    "Install asyncpg or unset DATABASE_URL."
                )
            pool = await asyncpg.create_pool(
                dsn=DATABASE_URL,
                min_size=1,
                max_size=DATABASE_MAX_CONNECTIONS,
            )
            _db = PostgresAdapter(pool)
            logger.info("Connected to Postgres database")
        else:
            sqlite_path = DATABASE_PATH
            if DATABASE_URL:
                sqlite_path = _sqlite_path_from_url(DATABASE_URL) or DATABASE_PATH
            conn = await aiosqlite.connect(sqlite_path)
            conn.row_factory = aiosqlite.Row
            _db = SQLiteAdapter(conn)
            logger.info("Connected to SQLite database at %s", sqlite_path)
    return _db


def _sqlite_path_from_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or ""
    if not path or path == "/":
        return ""
    # sqlite:////absolute/path.db -> keep absolute path
    if url.startswith("sqlite:////"):
        return path
    # sqlite:///relative.db -> strip leading slash
    if path.startswith("/"):
        return path[1:]
    return path


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS patients (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        triage_status TEXT,
        bib_number TEXT,
        admission_date TEXT,
        data TEXT NOT NULL DEFAULT '{}',
        updated_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS header_info (
        id INTEGER PRIMARY KEY,
        data TEXT NOT NULL DEFAULT '{}'
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS checklist_items (
        id INTEGER PRIMARY KEY,
        items TEXT NOT NULL DEFAULT '{}'
    );
    """,
]

DEFAULT_PMA_CHECKLIST_ITEMS: dict[str, list[str]] = {
    "Infrastructure & Sécurité": [
        "Tente PMA montée et sécurisée",
        "Balisage Entrée / Sortie en place",
        "Éclairage zone de soins fonctionnel",
        "Groupe électrogène opérationnel",
        "Zone de dépose brancards dégagée",
    ],
    "Poste de Triage (Entrée)": [
        "Médecin trieur en place",
        "Bracelets / Fiches de triage disponibles",
        "Tableau de régulation (Main courante) prêt",
        "Radio communication testée",
    ],
    "Zone de Soins (UA/UR)": [
        "Oxygène (Multi-postes) disponible",
        "Sacs PS / Lots catastrophe répartis",
        "Défibrillateur / Scope prêt",
        "Glacière / Gestion des corps (DCD)",
    ],
    "Logistique & Évacuation": [
        "Norias d'ambulances organisées",
        "Gestion des déchets (DASRI)",
        "Ravitaillement en eau potable",
        "Couvertures de survie en nombre suffisant",
    ],
}


async def init_db() -> None:
    db = await get_db()

    if db.engine == "sqlite":
        await db.executescript("".join(SCHEMA))
    else:
        for stmt in SCHEMA:
            await db.execute(stmt)

    await db.execute(
        "INSERT INTO header_info (id, data) VALUES (?, ?) ON CONFLICT (id) DO NOTHING",
        (1, HeaderInfo(company_name=COMPANY_NAME).model_dump_json()),
    )
    await db.execute(
        "INSERT INTO checklist_items (id, items) VALUES (?, ?) ON CONFLICT (id) DO NOTHING",
        (1, json.dumps(DEFAULT_PMA_CHECKLIST_ITEMS, ensure_ascii=False)),
    )
    await db.commit()

    if SEED_DEMO_PATIENTS:
        await _seed_demo_patients(db)


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def _seed_demo_patients(db: DatabaseAdapter) -> None:
    """Seed a few runners for UI previews."""
    now = datetime.now(UTC)

    demo = [
        Patient(
            id="demo-malaise",
            created_at=(now - timedelta(minutes=42)).isoformat(),
            last_name="Martin",
            first_name="Julie",
            sex="Femme",
            age="34",
            bib_number="1042",
            chief_complaint="Malaise",
            circumstances="Team: AC Lyon | Meca: Malaise, Surmenage / Déshydratation | Malaise au km 18, chaleur",
            heart_rate="128",
            spo2="96",
            glasgow_score="15",
            consciousness="Consciente",
            observations="[Soins: Mise au repos]\nRéhydratation orale",
            triage_status=TriageStatus.UR,
            admission_date=(now - timedelta(minutes=42)).isoformat(),
        ),
        Patient(
            id="demo-chute",
            created_at=(now - timedelta(minutes=15)).isoformat(),
            last_name="Participant",
            first_name="#2210",
            sex="Homme",
            age="51",
            bib_number="2210",
            chief_complaint="Chute",
            circumstances="Team:  | Meca: Chute | Chute dans la descente",
            physical_exam="Plaie (genou gauche)",
            observations="[Soins: Pansement / Compression, Glace]\nPlaie superficielle",
            triage_status=TriageStatus.UIMP,
            admission_date=(now - timedelta(minutes=15)).isoformat(),
        ),
    ]

    existing_rows = await db.fetch_all(
        "SELECT id FROM patients WHERE id IN ('demo-malaise', 'demo-chute')"
    )
    existing = {row["id"] for row in existing_rows}
    demo = [p for p in demo if p.id not in existing]
    if not demo:
        return

    await db.executemany(
        """INSERT INTO patients (
            id, created_at, triage_status, bib_number, admission_date, data, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
        [
            (
                p.id,
                p.created_at,
                p.triage_status.value if p.triage_status else None,
                p.bib_number,
                p.admission_date,
                p.model_dump_json(),
                now.isoformat(),
            )
            for p in demo
        ],
    )
    await db.commit()
