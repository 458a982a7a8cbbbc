"""DynamoDB access for comments and subscriptions.

Each table is wrapped in a DynamoStore that exposes the three operations the
functions need: a range query over one partition, a conditional put that
refuses to overwrite, and a delete that reports what was removed.

Table layout:
    photo_comments       PK photoId, SK "createdAt#commentId",
                         GSI commentId-index on commentId
    photo_subscriptions  PK photoId, SK email
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


@dataclass
class QueryResult:
    items: List[Dict[str, Any]] = field(default_factory=list)
    continuation_key: Optional[Dict[str, Any]] = None
    count: int = 0


class DynamoStore:
    """Range queries and conditional writes against one DynamoDB table."""

    def __init__(
        self,
        table_name: str,
        partition_key: str,
        sort_key: str,
        region: Optional[str] = None,
        resource=None,
        index_keys: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            table_name: DynamoDB table name.
            partition_key: Name of the table's partition key attribute.
            sort_key: Name of the table's sort key attribute.
            region: AWS region used when no resource is supplied.
            resource: Optional boto3 DynamoDB resource (for tests/reuse).
            index_keys: Partition key attribute per secondary index name.
        """
        if resource is None:
            resource = boto3.resource("dynamodb", region_name=region)
        self.table_name = table_name
        self.partition_key = partition_key
        self.sort_key = sort_key
        self.index_keys = dict(index_keys or {})
        self.table = resource.Table(table_name)

    def query(
        self,
        partition_value: str,
        continuation_key: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        scan_forward: bool = True,
        projection: Optional[Sequence[str]] = None,
        count_only: bool = False,
        index_name: Optional[str] = None,
    ) -> QueryResult:
        """Run one Query call against a partition (or an index partition).

        Returns the page of items, the LastEvaluatedKey to continue from, and
        the number of matching items in this page.
        """
        key_name = self.index_keys.get(index_name, self.partition_key) if index_name else self.partition_key
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key(key_name).eq(partition_value),
            "ScanIndexForward": scan_forward,
        }
        if index_name:
            kwargs["IndexName"] = index_name
        if limit is not None:
            kwargs["Limit"] = limit
        if continuation_key:
            kwargs["ExclusiveStartKey"] = continuation_key
        if count_only:
            kwargs["Select"] = "COUNT"
        elif projection:
            names = {f"#p{i}": attr for i, attr in enumerate(projection)}
            kwargs["ProjectionExpression"] = ", ".join(names)
            kwargs["ExpressionAttributeNames"] = names

        logger.debug(
            "Querying %s (%s=%s, index=%s, limit=%s, forward=%s, count=%s)",
            self.table_name, key_name, partition_value, index_name, limit, scan_forward, count_only,
        )
        resp = self.table.query(**kwargs)
        items = [] if count_only else resp.get("Items", [])
        return QueryResult(
            items=items,
            continuation_key=resp.get("LastEvaluatedKey"),
            count=resp.get("Count", len(items)),
        )

    def put_if_absent(self, item: Dict[str, Any]) -> bool:
        """Write the item unless one with the same primary key exists.

        Returns:
            True if written, False if the conditional check failed.
        """
        condition = Attr(self.partition_key).not_exists() & Attr(self.sort_key).not_exists()
        try:
            self.table.put_item(Item=item, ConditionExpression=condition)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED:
                logger.info(
                    "Conditional put refused on %s: %s=%s, %s=%s already exists",
                    self.table_name,
                    self.partition_key, item.get(self.partition_key),
                    self.sort_key, item.get(self.sort_key),
                )
                return False
            raise
        return True

    def delete_returning_old(self, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Delete by primary key; returns the removed attributes or None if absent."""
        resp = self.table.delete_item(Key=key, ReturnValues="ALL_OLD")
        return resp.get("Attributes") or None
