import boto3
from typing import Optional, Dict, Any, List
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError
from cryptostickers.settings import settings
import logging

log = logging.getLogger(__name__)

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

        # Ensure tables exist at initialization
        self.ensure_table(settings.images_table)
        self.ensure_table(settings.tags_table)

    # Refer here: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/dynamodb/client/create_table.html
    def ensure_table(self, name: str):
        try:
            table = self.resource.Table(name)
            table.load()
        except ClientError:
            table = self.resource.create_table(
                TableName=name,
                KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
                ProvisionedThroughput={"ReadCapacityUnits": 5, "WriteCapacityUnits": 5},
            )
            table.wait_until_exists()
            log.info("Created table %s", name)

    @property
    def images(self):
        return self.resource.Table(settings.images_table)

    @property
    def tags(self):
        return self.resource.Table(settings.tags_table)

    def _scan_all(self, table, filter_expression=None) -> List[Dict[str, Any]]:
        """Scans a whole table, following LastEvaluatedKey."""
        scan_kwargs = {}
        if filter_expression is not None:
            scan_kwargs["FilterExpression"] = filter_expression
        items = []
        while True:
            resp = table.scan(**scan_kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            scan_kwargs["ExclusiveStartKey"] = last_key

    # images

    def put_image(self, item: Dict[str, Any]):
        self.images.put_item(Item=item)
        log.debug("Inserted image %s", item.get("id"))

    def get_image(self, image_id: str) -> Optional[Dict[str, Any]]:
        resp = self.images.get_item(Key={"id": image_id})
        return resp.get("Item")

    def scan_images(self, tag: Optional[str] = None) -> List[Dict[str, Any]]:
        filter_expression = Attr("tags").contains(tag) if tag else None
        return self._scan_all(self.images, filter_expression)

    def update_image(self, image_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Sets the given attributes. Returns the new item, or None when it does not exist."""
        names = {f"#{k}": k for k in fields}
        values = {f":{k}": v for k, v in fields.items()}
        expression = "SET " + ", ".join(f"#{k} = :{k}" for k in fields)
        try:
            resp = self.images.update_item(
                Key={"id": image_id},
                UpdateExpression=expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ConditionExpression=Attr("id").exists(),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise
        log.debug("Updated image %s: %s", image_id, ", ".join(fields))
        return resp.get("Attributes")

    def increment_views(self, image_id: str) -> Optional[Dict[str, Any]]:
        try:
            resp = self.images.update_item(
                Key={"id": image_id},
                UpdateExpression="SET #views = if_not_exists(#views, :zero) + :one",
                ExpressionAttributeNames={"#views": "views"},
                ExpressionAttributeValues={":zero": 0, ":one": 1},
                ConditionExpression=Attr("id").exists(),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise
        return resp.get("Attributes")

    def delete_image(self, image_id: str):
        self.images.delete_item(Key={"id": image_id})
        log.debug("Deleted image %s", image_id)

    # tags

    def put_tag(self, item: Dict[str, Any]):
        self.tags.put_item(Item=item)
        log.debug("Inserted tag %s", item.get("name"))

    def scan_tags(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        filter_expression = Attr("name").eq(name) if name else None
        return self._scan_all(self.tags, filter_expression)

    def delete_tags_by_name(self, name: str) -> int:
        """Deletes every tag record with this name. Returns how many were removed."""
        records = self.scan_tags(name)
        for record in records:
            self.tags.delete_item(Key={"id": record["id"]})
        log.debug("Deleted %d tag record(s) named %s", len(records), name)
        return len(records)

    def close(self):
        log.info("Closed DynamoDB resource")
