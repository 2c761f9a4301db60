#!/usr/bin/env python3
"""
HOS 알림 수신인 관리 CLI 도구

사용법:
  python scripts/manage_recipients.py ensure <database>            # HOS 설정 문서 생성
  python scripts/manage_recipients.py list <database>              # 수신인 목록
  python scripts/manage_recipients.py add <database> <email>       # 수신인 추가
  python scripts/manage_recipients.py remove <database> <email>    # 수신인 삭제
  python scripts/manage_recipients.py tenants                      # 전체 테넌트 목록
"""
import os
import sys

# 프로젝트 루트를 Python 경로에 추가
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from hos_alerter.recipients import RecipientStore, RecipientStoreError
from hos_alerter.structured_logging import setup_logging


def print_recipients(database, recipients):
    """수신인 목록 출력"""
    print(f"\n{database} 수신인 목록 ({len(recipients)}명):")
    print("=" * 80)
    for recipient in recipients:
        print(f"  - {recipient.email:40s} | 추가: {recipient.added_at}")


def cmd_ensure(store, database):
    """HOS 설정 문서 생성"""
    if store.ensure_tenant_configuration(database):
        print(f"✓ 설정 문서 생성: {database}")
    else:
        print(f"- 변경 없음 (이미 존재하거나 저장하지 않는 데이터베이스): {database}")


def cmd_list(store, database):
    """수신인 목록"""
    print_recipients(database, store.list_recipients(database))


def cmd_add(store, database, email):
    """수신인 추가"""
    print(f"수신인 추가 중: {email} ({database})")
    recipients = store.add_recipient(database, email)
    print("✓ 추가 완료")
    print_recipients(database, recipients)


def cmd_remove(store, database, email):
    """수신인 삭제"""
    print(f"수신인 삭제 중: {email} ({database})")
    recipients = store.remove_recipient(database, email)
    print("✓ 삭제 완료")
    print_recipients(database, recipients)


def cmd_tenants(store):
    """전체 테넌트 목록"""
    configurations = store.list_tenants()
    print(f"\n전체 테넌트 ({len(configurations)}개):")
    print("=" * 80)
    for configuration in configurations:
        status = "active" if configuration.active else "inactive"
        print(
            f"  - {configuration.database_name:30s} | {status:8s} | "
            f"수신인 {len(configuration.recipients)}명 | 수정: {configuration.updated_at}"
        )


USAGE = {
    "ensure": (1, "ensure <database>"),
    "list": (1, "list <database>"),
    "add": (2, "add <database> <email>"),
    "remove": (2, "remove <database> <email>"),
    "tenants": (0, "tenants"),
}


def main(argv=None, store=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(__doc__)
        sys.exit(1)

    command, args = argv[0], argv[1:]
    if command not in USAGE:
        print(f"알 수 없는 명령어: {command}")
        print(__doc__)
        sys.exit(1)

    required, usage = USAGE[command]
    if len(args) < required:
        print(f"사용법: python scripts/manage_recipients.py {usage}")
        sys.exit(1)

    store = store or RecipientStore()

    try:
        if command == "ensure":
            cmd_ensure(store, args[0])
        elif command == "list":
            cmd_list(store, args[0])
        elif command == "add":
            cmd_add(store, args[0], args[1])
        elif command == "remove":
            cmd_remove(store, args[0], args[1])
        elif command == "tenants":
            cmd_tenants(store)

    except RecipientStoreError as e:
        print(f"✗ 실패: {e}")
        sys.exit(1)


if __name__ == "__main__":
    setup_logging()
    main()
