"""
환경변수 및 설정 관리 모듈
"""

import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# .env 파일 로드 (로컬 개발 환경용)
load_dotenv()


def _get_float(name: str, default: float) -> float:
    """숫자 환경변수 읽기 (잘못된 값이면 기본값)"""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"잘못된 숫자 환경변수 {name}={raw!r}, 기본값 {default} 사용")
        return default


class ConfigClass:
    """애플리케이션 설정 클래스"""

    # 문서 저장소 컬렉션 (테넌트별 HOS 설정 문서)
    CONFIGURATIONS_COLLECTION = "hos_configurations"

    # 상태 배너 자동 닫힘 시간 (초)
    ALERT_DISMISS_SECONDS = 5

    @property
    def IS_LAMBDA(self):
        """AWS Lambda 실행 환경 여부"""
        return os.environ.get("AWS_EXECUTION_ENV") is not None

    @property
    def STORAGE_BACKEND(self):
        """스토리지 백엔드 강제 지정 (dynamodb / sqlite, 비어 있으면 환경 자동 감지)"""
        return os.getenv("STORAGE_BACKEND", "").strip().lower()

    @property
    def DB_PATH(self):
        """SQLite DB 파일 경로"""
        return os.getenv("DB_PATH", "data/hos_alerter.db")

    @property
    def CONFIGURATIONS_TABLE(self):
        """테넌트 설정 테이블명 (SQLite / DynamoDB 공통)"""
        return os.getenv("CONFIGURATIONS_TABLE", self.CONFIGURATIONS_COLLECTION)

    @property
    def DYNAMODB_CONFIGURATIONS_TABLE(self):
        """DynamoDB 테넌트 설정 테이블명"""
        return os.getenv("DYNAMODB_CONFIGURATIONS_TABLE", self.CONFIGURATIONS_TABLE)

    @property
    def AWS_REGION(self):
        """AWS 리전"""
        return os.getenv("AWS_REGION", "us-east-1")

    @property
    def STORE_CONNECT_TIMEOUT(self):
        """저장소 연결 타임아웃 (초)"""
        return _get_float("STORE_CONNECT_TIMEOUT", 5.0)

    @property
    def STORE_READ_TIMEOUT(self):
        """저장소 읽기 타임아웃 (초)"""
        return _get_float("STORE_READ_TIMEOUT", 10.0)

    @property
    def STORE_MAX_ATTEMPTS(self):
        """botocore 전송 재시도 횟수 (최초 호출 포함)"""
        return int(_get_float("STORE_MAX_ATTEMPTS", 2))

    @property
    def CONFLICT_MAX_ATTEMPTS(self):
        """revision 충돌 시 read-modify-write 최대 시도 횟수"""
        return max(1, int(_get_float("CONFLICT_MAX_ATTEMPTS", 3)))

    @property
    def CONFLICT_BACKOFF_SECONDS(self):
        """revision 충돌 재시도 기본 대기 시간 (초, 시도마다 2배)"""
        return _get_float("CONFLICT_BACKOFF_SECONDS", 0.1)

    @property
    def DEMO_DATABASE(self):
        """저장하지 않는 예약 데이터베이스명"""
        return os.getenv("DEMO_DATABASE", "demo")


# 싱글톤 인스턴스 생성
Config = ConfigClass()
