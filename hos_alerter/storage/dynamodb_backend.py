"""
DynamoDB 스토리지 백엔드 구현
AWS 환경에서 테넌트별 HOS 설정 문서를 DynamoDB 테이블에 저장
(파티션 키: database_name)
"""

import logging
from typing import Dict, List, Optional
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .base import RevisionConflict, StorageBackend, StorageError

logger = logging.getLogger(__name__)


class DynamoDBBackend(StorageBackend):
    """DynamoDB 스토리지 백엔드"""

    def __init__(self, table_name: Optional[str] = None, region_name: Optional[str] = None):
        """DynamoDBBackend 초기화 (Config에서 설정 로드)"""
        from ..config import Config

        self.region_name = region_name or Config.AWS_REGION
        self._table_name = table_name or Config.DYNAMODB_CONFIGURATIONS_TABLE
        self._client_config = BotoConfig(
            connect_timeout=Config.STORE_CONNECT_TIMEOUT,
            read_timeout=Config.STORE_READ_TIMEOUT,
            retries={"max_attempts": Config.STORE_MAX_ATTEMPTS, "mode": "standard"},
        )
        self._dynamodb = None
        self._tables = {}  # 테이블별 캐시

    def _get_dynamodb(self):
        """Lazy loading: boto3 DynamoDB 리소스"""
        if self._dynamodb is None:
            self._dynamodb = boto3.resource(
                "dynamodb", region_name=self.region_name, config=self._client_config
            )
        return self._dynamodb

    def _get_table(self, table_name: str):
        """Lazy loading: 테이블 리소스"""
        if table_name not in self._tables:
            dynamodb = self._get_dynamodb()
            self._tables[table_name] = dynamodb.Table(table_name)
        return self._tables[table_name]

    def get_configuration(self, database_name: str) -> Optional[Dict]:
        """설정 문서 조회 (ConsistentRead)"""
        try:
            table = self._get_table(self._table_name)
            response = table.get_item(
                Key={"database_name": database_name}, ConsistentRead=True
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"DynamoDB get_item 실패: {e}")
            raise StorageError(str(e)) from e

        if "Item" in response:
            logger.info(f"DynamoDB 설정 문서 조회 완료: {database_name}")
            return response["Item"]

        logger.info(f"DynamoDB 설정 문서 없음: {database_name}")
        return None

    def create_configuration(self, item: Dict) -> bool:
        """
        설정 문서 생성 (멱등성 보장)
        이미 존재하면 False 반환 (ConditionExpression: attribute_not_exists)
        """
        try:
            table = self._get_table(self._table_name)
            table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(database_name)",
            )
            logger.info(f"DynamoDB 설정 문서 생성: {item.get('database_name')}")
            return True

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.info(f"이미 존재하는 설정 문서: {item.get('database_name')}")
                return False
            logger.error(f"DynamoDB put_item 실패: {e}")
            raise StorageError(str(e)) from e
        except BotoCoreError as e:
            logger.error(f"DynamoDB put_item 실패 (전송): {e}")
            raise StorageError(str(e)) from e

    def replace_recipients(
        self,
        database_name: str,
        recipients: List[Dict],
        updated_at: str,
        expected_revision: int,
    ) -> Dict:
        """수신인 목록 교체 (revision 조건부 업데이트)"""
        if expected_revision == 0:
            # revision 필드 이전에 만들어진 문서는 0으로 취급
            condition = (
                "attribute_exists(database_name) AND "
                "(attribute_not_exists(#revision) OR #revision = :expected)"
            )
        else:
            condition = "#revision = :expected"

        try:
            table = self._get_table(self._table_name)
            response = table.update_item(
                Key={"database_name": database_name},
                UpdateExpression=(
                    "SET #recipients = :recipients, #updated_at = :updated_at, "
                    "#revision = :next"
                ),
                ConditionExpression=condition,
                ExpressionAttributeNames={
                    "#recipients": "recipients",
                    "#updated_at": "updated_at",
                    "#revision": "revision",
                },
                ExpressionAttributeValues={
                    ":recipients": recipients,
                    ":updated_at": updated_at,
                    ":expected": expected_revision,
                    ":next": expected_revision + 1,
                },
                ReturnValues="ALL_NEW",
            )

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.warning(
                    f"revision 충돌: {database_name} (기대값 {expected_revision})"
                )
                raise RevisionConflict(database_name) from e
            logger.error(f"DynamoDB update_item 실패: {e}")
            raise StorageError(str(e)) from e
        except BotoCoreError as e:
            logger.error(f"DynamoDB update_item 실패 (전송): {e}")
            raise StorageError(str(e)) from e

        logger.info(f"DynamoDB 수신인 목록 업데이트 완료: {database_name} ({len(recipients)}건)")
        return response.get("Attributes", {})

    def list_configurations(self) -> List[Dict]:
        """모든 설정 문서 조회"""
        try:
            table = self._get_table(self._table_name)
            response = table.scan()

            items = response.get("Items", [])

            # 페이지네이션 처리
            while "LastEvaluatedKey" in response:
                response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"])
                items.extend(response.get("Items", []))

        except (ClientError, BotoCoreError) as e:
            logger.error(f"DynamoDB scan 실패: {e}")
            raise StorageError(str(e)) from e

        logger.info(f"DynamoDB 전체 스캔 완료: {len(items)}건")
        return items
