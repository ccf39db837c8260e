import boto3
import json
from decimal import Decimal
from typing import Optional, Dict, Any
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from coloring_app.settings import settings
import logging

log = logging.getLogger(__name__)

OWNER_INDEX = "OwnerIndex"


def to_dynamo(item: Dict[str, Any]) -> Dict[str, Any]:
    """DynamoDB rejects floats, store them as Decimal."""
    return json.loads(json.dumps(item, default=str), parse_float=Decimal)


def from_dynamo(value: Any) -> Any:
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


# -------------------------
# DynamoDB Service
# -------------------------
class DynamoDBService:
    def __init__(self):
        session = boto3.session.Session(region_name=settings.aws_region)
        kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
        }
        if settings.aws_endpoint_url:
            kwargs["endpoint_url"] = settings.aws_endpoint_url

        self.resource = session.resource("dynamodb", **kwargs)
        log.info("Initialized DynamoDB resource")

        # Ensure table exists at initialization
        self.ensure_table()

    @property
    def table(self):
        return self.resource.Table(settings.dynamodb_table)

    # Refer here: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/dynamodb/client/create_table.html
    def ensure_table(self):
        try:
            self.table.load()
        except ClientError:
            table = self.resource.create_table(
                TableName=settings.dynamodb_table,
                KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
                AttributeDefinitions=[
                    {"AttributeName": "image_id", "AttributeType": "S"},
                    {"AttributeName": "owner_user_id", "AttributeType": "S"},
                    {"AttributeName": "created_at", "AttributeType": "S"},
                ],
                GlobalSecondaryIndexes=[
                    {
                        "IndexName": OWNER_INDEX,
                        "KeySchema": [
                            {"AttributeName": "owner_user_id", "KeyType": "HASH"},
                            {"AttributeName": "created_at", "KeyType": "RANGE"},
                        ],
                        "Projection": {"ProjectionType": "ALL"},
                        "ProvisionedThroughput": {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5},
                    }
                ],
                ProvisionedThroughput={"ReadCapacityUnits": 5, "WriteCapacityUnits": 5},
            )
            table.wait_until_exists()
            log.info("Created table %s", settings.dynamodb_table)

    def put_item(self, item: Dict[str, Any]):
        self.table.put_item(Item=to_dynamo(item))
        log.debug("Inserted item %s", item.get("image_id"))

    def get_item(self, image_id: str) -> Optional[Dict[str, Any]]:
        resp = self.table.get_item(Key={"image_id": image_id})
        item = resp.get("Item")
        return from_dynamo(item) if item else None

    def delete_owned_item(self, image_id: str, owner_user_id: str):
        """Deletes an item only while it still belongs to owner_user_id.

        Raises ClientError with code ConditionalCheckFailedException otherwise.
        """
        self.table.delete_item(
            Key={"image_id": image_id},
            ConditionExpression=Attr("owner_user_id").eq(owner_user_id),
        )
        log.debug("Deleted item %s", image_id)

    def query_owner(
        self,
        owner_user_id: str,
        limit: int = 20,
        exclusive_start_key: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        query_kwargs = {
            "IndexName": OWNER_INDEX,
            "KeyConditionExpression": Key("owner_user_id").eq(owner_user_id),
            "ScanIndexForward": False,  # newest first
            "Limit": limit,
        }
        if exclusive_start_key:
            query_kwargs["ExclusiveStartKey"] = exclusive_start_key
        resp = self.table.query(**query_kwargs)
        return {
            "Items": [from_dynamo(item) for item in resp.get("Items", [])],
            "LastEvaluatedKey": resp.get("LastEvaluatedKey"),
        }

    def count_owner(self, owner_user_id: str) -> int:
        query_kwargs = {
            "IndexName": OWNER_INDEX,
            "KeyConditionExpression": Key("owner_user_id").eq(owner_user_id),
            "Select": "COUNT",
        }
        total = 0
        while True:
            resp = self.table.query(**query_kwargs)
            total += resp.get("Count", 0)
            if not resp.get("LastEvaluatedKey"):
                return total
            query_kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]

    def close(self):
        log.info("Closed DynamoDB resource")
