# storage.py
"""
Append-only storage for partners and saved distributions.

Two backends share one interface: ``MemoryStorage`` for tests and local runs,
``SQLiteStorage`` for anything that should survive a restart. The Flask app
receives one of them at construction time.
"""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List

from config import Settings
from models import DistributionRecord, Partner

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Storage(ABC):
    @abstractmethod
    def create_partner(self, name: str) -> Partner:
        ...

    @abstractmethod
    def get_partners(self) -> List[Partner]:
        ...

    @abstractmethod
    def create_distribution(self, record: dict) -> DistributionRecord:
        """``record`` holds totalAmount, totalHours, hourlyRate and partnerData."""

    @abstractmethod
    def get_distributions(self) -> List[DistributionRecord]:
        ...


class MemoryStorage(Storage):
    def __init__(self):
        self._lock = threading.Lock()
        self._partners: List[Partner] = []
        self._distributions: List[DistributionRecord] = []

    def create_partner(self, name: str) -> Partner:
        with self._lock:
            partner = Partner(id=len(self._partners) + 1, name=name)
            self._partners.append(partner)
        return partner

    def get_partners(self) -> List[Partner]:
        with self._lock:
            return list(self._partners)

    def create_distribution(self, record: dict) -> DistributionRecord:
        with self._lock:
            dist = DistributionRecord(
                id=len(self._distributions) + 1,
                total_amount=record["totalAmount"],
                total_hours=record["totalHours"],
                hourly_rate=record["hourlyRate"],
                partner_data=list(record.get("partnerData") or []),
                created_at=_now(),
            )
            self._distributions.append(dist)
        return dist

    def get_distributions(self) -> List[DistributionRecord]:
        with self._lock:
            return list(self._distributions)


class SQLiteStorage(Storage):
    def __init__(self, path: str = "tips.db"):
        self.path = path
        self._lock = threading.Lock()
        self._init_db()

    def _connect(self):
        return sqlite3.connect(self.path)

    def _init_db(self):
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS partners (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL
                )
            ''')
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS distributions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    total_amount REAL NOT NULL,
                    total_hours REAL NOT NULL,
                    hourly_rate REAL NOT NULL,
                    partner_data TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            ''')
            conn.commit()
        finally:
            conn.close()
        logger.info("SQLite storage ready at %s", self.path)

    def create_partner(self, name: str) -> Partner:
        with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute("INSERT INTO partners (name) VALUES (?)", (name,))
                conn.commit()
                return Partner(id=cursor.lastrowid, name=name)
            finally:
                conn.close()

    def get_partners(self) -> List[Partner]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT id, name FROM partners ORDER BY id").fetchall()
        finally:
            conn.close()
        return [Partner(id=row[0], name=row[1]) for row in rows]

    def create_distribution(self, record: dict) -> DistributionRecord:
        partner_data = list(record.get("partnerData") or [])
        created_at = _now()
        with self._lock:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    '''
                    INSERT INTO distributions
                        (total_amount, total_hours, hourly_rate, partner_data, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    ''',
                    (
                        record["totalAmount"],
                        record["totalHours"],
                        record["hourlyRate"],
                        json.dumps(partner_data),
                        created_at,
                    ),
                )
                conn.commit()
                record_id = cursor.lastrowid
            finally:
                conn.close()
        return DistributionRecord(
            id=record_id,
            total_amount=record["totalAmount"],
            total_hours=record["totalHours"],
            hourly_rate=record["hourlyRate"],
            partner_data=partner_data,
            created_at=created_at,
        )

    def get_distributions(self) -> List[DistributionRecord]:
        conn = self._connect()
        try:
            rows = conn.execute('''
                SELECT id, total_amount, total_hours, hourly_rate, partner_data, created_at
                FROM distributions
                ORDER BY id
            ''').fetchall()
        finally:
            conn.close()
        return [
            DistributionRecord(
                id=row[0],
                total_amount=row[1],
                total_hours=row[2],
                hourly_rate=row[3],
                partner_data=json.loads(row[4]),
                created_at=row[5],
            )
            for row in rows
        ]


def get_storage(settings: Settings) -> Storage:
    if settings.storage_backend == "sqlite":
        return SQLiteStorage(settings.database_path)
    if settings.storage_backend == "memory":
        return MemoryStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")
