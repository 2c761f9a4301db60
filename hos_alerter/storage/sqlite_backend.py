"""
SQLite 스토리지 백엔드 구현
로컬 개발 환경에서 SQLite를 사용하여 DynamoDB를 대체
"""

import json
import logging
import sqlite3
import os
from typing import Dict, List, Optional

from .base import RevisionConflict, StorageBackend, StorageError

logger = logging.getLogger(__name__)


class SQLiteBackend(StorageBackend):
    """SQLite 스토리지 백엔드"""

    def __init__(self, db_path: Optional[str] = None, table_name: Optional[str] = None):
        """SQLiteBackend 초기화 및 DB 연결 설정"""
        self._connection = None
        self._tables_created = False

        from ..config import Config

        self.db_path = db_path or Config.DB_PATH
        self.table_name = table_name or Config.CONFIGURATIONS_TABLE
        self.timeout = Config.STORE_READ_TIMEOUT

    def _get_connection(self):
        """Lazy connection: DB 커넥션 생성 (이미 생성된 경우 재사용)"""
        if self._connection is None:
            # 데이터베이스 디렉토리 자동 생성
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

            self._connection = sqlite3.connect(
                self.db_path, check_same_thread=False, timeout=self.timeout
            )

            # WAL 모드 사용 (동시성 개선)
            self._connection.execute("PRAGMA journal_mode=WAL")

            logger.info(f"SQLite DB 연결: {self.db_path}")

            if not self._tables_created:
                self._create_tables_impl()

        return self._connection

    def _create_tables_impl(self):
        """테이블 자동 생성 (내부 구현)"""
        cursor = self._connection.cursor()

        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table_name} (
                database_name TEXT PRIMARY KEY,
                recipients TEXT NOT NULL DEFAULT '[]',
                active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                revision INTEGER NOT NULL DEFAULT 0
            )
        """)

        self._connection.commit()
        self._tables_created = True
        logger.info("SQLite 테이블 생성 완료")

    @staticmethod
    def _row_to_item(cursor, row) -> Dict:
        columns = [description[0] for description in cursor.description]
        item = dict(zip(columns, row))
        item["recipients"] = json.loads(item.get("recipients") or "[]")
        item["active"] = bool(item.get("active"))
        return item

    def _fetch(self, cursor, database_name: str) -> Optional[Dict]:
        cursor.execute(
            f"SELECT * FROM {self.table_name} WHERE database_name = ?", (database_name,)
        )
        row = cursor.fetchone()
        if row:
            return self._row_to_item(cursor, row)
        return None

    def get_configuration(self, database_name: str) -> Optional[Dict]:
        """설정 문서 조회"""
        try:
            conn = self._get_connection()
            return self._fetch(conn.cursor(), database_name)
        except sqlite3.Error as e:
            logger.error(f"SQLite 설정 문서 조회 실패: {e}")
            raise StorageError(str(e)) from e

    def create_configuration(self, item: Dict) -> bool:
        """
        설정 문서 생성 (멱등성 보장)
        SQLite의 INSERT OR IGNORE 기능 사용
        """
        try:
            conn = self._get_connection()
            cursor = conn.cursor()

            cursor.execute(
                f"""
                INSERT OR IGNORE INTO {self.table_name}
                (database_name, recipients, active, created_at, updated_at, revision)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    item.get("database_name"),
                    json.dumps(item.get("recipients") or []),
                    1 if item.get("active", True) else 0,
                    item.get("created_at"),
                    item.get("updated_at"),
                    item.get("revision", 0),
                ),
            )

            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite 설정 문서 생성 실패: {e}")
            raise StorageError(str(e)) from e

        inserted = cursor.rowcount > 0
        logger.info(f"설정 문서 생성: {item.get('database_name')} (삽입: {inserted})")
        return inserted

    def replace_recipients(
        self,
        database_name: str,
        recipients: List[Dict],
        updated_at: str,
        expected_revision: int,
    ) -> Dict:
        """수신인 목록 교체 (UPDATE ... WHERE revision = ?)"""
        try:
            conn = self._get_connection()
            cursor = conn.cursor()

            cursor.execute(
                f"""
                UPDATE {self.table_name}
                SET recipients = ?, updated_at = ?, revision = revision + 1
                WHERE database_name = ? AND revision = ?
            """,
                (json.dumps(recipients), updated_at, database_name, expected_revision),
            )
            conn.commit()

            if cursor.rowcount == 0:
                logger.warning(
                    f"revision 충돌: {database_name} (기대값 {expected_revision})"
                )
                raise RevisionConflict(database_name)

            item = self._fetch(cursor, database_name)
        except sqlite3.Error as e:
            logger.error(f"SQLite 수신인 목록 업데이트 실패: {e}")
            raise StorageError(str(e)) from e

        logger.info(f"수신인 목록 업데이트: {database_name} ({len(recipients)}건)")
        return item

    def list_configurations(self) -> List[Dict]:
        """모든 설정 문서 조회"""
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {self.table_name} ORDER BY database_name")
            results = [self._row_to_item(cursor, row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error(f"SQLite 전체 조회 실패: {e}")
            raise StorageError(str(e)) from e

        logger.info(f"모든 설정 문서 조회: {len(results)}건")
        return results

    def close(self):
        """DB 커넥션 종료"""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
