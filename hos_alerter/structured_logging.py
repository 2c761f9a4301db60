"""
구조화 로깅 유틸리티
CloudWatch Logs에서 검색/필터링이 용이한 JSON 형식 로깅 지원
"""
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any
from datetime import datetime, timezone


class StructuredLogger:
    """구조화된 JSON 로깅을 위한 래퍼 클래스"""

    def __init__(self, logger: logging.Logger):
        """
        Args:
            logger: 기존 logger 인스턴스
        """
        self.logger = logger

    def log_event(
        self,
        level: str,
        event: str,
        message: str,
        **kwargs: Any
    ):
        """
        구조화된 로그 이벤트 기록

        Args:
            level: 로그 레벨 (INFO, WARNING, ERROR 등)
            event: 이벤트 타입 (recipient_added, store_unavailable 등)
            message: 사람이 읽기 쉬운 메시지
            **kwargs: 추가 키워드 인자
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "event": event,
            "message": message,
        }

        if kwargs:
            log_data.update(kwargs)

        log_message = json.dumps(log_data, ensure_ascii=False, default=str)

        log_level = getattr(logging, level.upper(), logging.INFO)
        self.logger.log(log_level, log_message)

    def info(self, event: str, message: str, **kwargs):
        """INFO 레벨 로그"""
        self.log_event("INFO", event, message, **kwargs)

    def warning(self, event: str, message: str, **kwargs):
        """WARNING 레벨 로그"""
        self.log_event("WARNING", event, message, **kwargs)

    def error(self, event: str, message: str, **kwargs):
        """ERROR 레벨 로그"""
        self.log_event("ERROR", event, message, **kwargs)


def get_structured_logger(name: str) -> StructuredLogger:
    """
    구조화 로거 생성

    Args:
        name: 로거 이름 (일반적으로 __name__ 사용)

    Returns:
        StructuredLogger 인스턴스

    Example:
        >>> logger = get_structured_logger(__name__)
        >>> logger.info(
        ...     event="recipient_added",
        ...     message="수신인 추가 완료",
        ...     database="acme_fleet",
        ...     email="ops@example.com"
        ... )
    """
    return StructuredLogger(logging.getLogger(name))


def setup_logging():
    """
    환경에 따른 로깅 설정

    - Lambda 환경: stdout 로깅만 사용 (CloudWatch)
    - 로컬 환경: 콘솔 + RotatingFileHandler (logs/hos_alerter.log)
    """
    is_lambda = os.environ.get('AWS_EXECUTION_ENV') is not None

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # 기존 핸들러 제거 (중복 방지)
    root_logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if not is_lambda:
        log_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'logs')
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'hos_alerter.log'),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


# 이벤트 타입별 로깅 헬퍼
def log_configuration_created(logger: StructuredLogger, database: str):
    """테넌트 설정 문서 생성 로그"""
    logger.info(
        event="tenant_configuration_created",
        message=f"HOS 설정 문서 생성: {database}",
        database=database
    )


def log_recipient_change(logger: StructuredLogger, action: str, database: str, email: str, count: int):
    """수신인 추가/삭제 로그"""
    logger.info(
        event=f"recipient_{action}",
        message=f"수신인 {action}: {email} ({database})",
        database=database,
        email=email,
        recipient_count=count
    )


def log_store_failure(logger: StructuredLogger, operation: str, database: str, error: str):
    """저장소 오류 로그"""
    logger.error(
        event="store_unavailable",
        message=f"저장소 오류: {operation} ({database})",
        operation=operation,
        database=database,
        error=error
    )
