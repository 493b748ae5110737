"""Connectors for non-file data sources.

Only the bundled sample datasets produce real data. Database and analytics
platform connectors are extension points without a protocol implementation;
they raise ConnectorNotImplementedError unless demo connectors are enabled,
in which case they hand back a synthetic dataset.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Optional

from core.interfaces import ConnectorPort
from core.models import ConnectionConfig, ParsedTable, ColumnInfo
from core.exceptions import ConnectorNotImplementedError
from utils.values import infer_column_type, non_empty_sample
from config import settings

logger = logging.getLogger(__name__)


SAMPLE_EVENTS = ["page_view", "click", "add_to_cart", "purchase", "search", "form_submit"]
CUSTOMER_EVENTS = ["purchase", "view", "click", "signup", "logout"]
COUNTRIES = ["US", "UK", "CA", "AU", "DE", "FR", "JP"]
PLATFORMS = ["web", "mobile", "tablet"]
BASE_DATE = datetime(2024, 1, 1)


def generate_web_analytics(seed: int = 42, row_count: int = 1000) -> ParsedTable:
    rng = random.Random(seed)
    rows = [
        {
            "id": i + 1,
            "user_id": f"user_{rng.randint(1, 200)}",
            "event_name": rng.choice(SAMPLE_EVENTS),
            "timestamp": (BASE_DATE + timedelta(days=i // 10)).isoformat(),
            "value": rng.randint(1, 100),
        }
        for i in range(row_count)
    ]
    return _synthetic_table("sample_web_analytics", rows)


def generate_customer_behavior(seed: int = 7, row_count: int = 800) -> ParsedTable:
    rng = random.Random(seed)
    rows = [
        {
            "user_id": f"customer_{rng.randint(1, 150)}",
            "event_type": rng.choice(CUSTOMER_EVENTS),
            "event_time": (BASE_DATE + timedelta(hours=i // 20)).isoformat(),
            "platform": rng.choice(PLATFORMS),
            "country": rng.choice(COUNTRIES),
        }
        for i in range(row_count)
    ]
    return _synthetic_table("sample_customer_behavior", rows)


def _synthetic_table(name: str, rows: list[dict]) -> ParsedTable:
    headers = list(rows[0].keys()) if rows else []
    columns = []
    for header in headers:
        samples = non_empty_sample((row[header] for row in rows), settings.PARSER_SAMPLE_SIZE)
        columns.append(ColumnInfo(
            name=header,
            inferred_type=infer_column_type(samples),
            sample_values=samples
        ))
    return ParsedTable(name=name, columns=columns, rows=rows, is_synthetic=True)


SAMPLE_DATASETS = {
    "sample_web_analytics": generate_web_analytics,
    "sample_customer_behavior": generate_customer_behavior,
}


class SampleDatasetConnector(ConnectorPort):
    """Bundled sample datasets"""

    @property
    def connector_types(self) -> list[str]:
        return list(SAMPLE_DATASETS)

    async def fetch(self, config: ConnectionConfig) -> ParsedTable:
        generator = SAMPLE_DATASETS.get(config.type)
        if generator is None:
            raise ConnectorNotImplementedError(config.type)
        return generator()


class _DemoConnector(ConnectorPort):
    """Named extension point; synthetic data only when demos are allowed"""

    def __init__(self, allow_demo: Optional[bool] = None):
        self.allow_demo = settings.ALLOW_DEMO_CONNECTORS if allow_demo is None else allow_demo

    async def fetch(self, config: ConnectionConfig) -> ParsedTable:
        if not self.allow_demo:
            raise ConnectorNotImplementedError(config.type)
        logger.warning("Connector %s has no implementation, returning demo data", config.type)
        return generate_web_analytics().model_copy(update={"name": f"{config.type}-demo"})


class DatabaseConnector(_DemoConnector):
    """Relational databases ({type, host, database, username, password})"""

    @property
    def connector_types(self) -> list[str]:
        return ["database", "postgresql", "mysql"]


class PlatformConnector(_DemoConnector):
    """Analytics platforms ({api_key, project_id})"""

    @property
    def connector_types(self) -> list[str]:
        return ["amplitude", "looker", "powerbi", "snowflake", "mixpanel"]


class ConnectorRegistry:
    """Routes a ConnectionConfig to the port that handles its type"""

    def __init__(self, connectors: Optional[list[ConnectorPort]] = None):
        self._ports: dict[str, ConnectorPort] = {}
        for connector in connectors or []:
            self.register(connector)

    def register(self, connector: ConnectorPort):
        for connector_type in connector.connector_types:
            self._ports[connector_type] = connector

    def get(self, connector_type: str) -> ConnectorPort:
        port = self._ports.get(connector_type)
        if port is None:
            raise ConnectorNotImplementedError(connector_type)
        return port

    @property
    def types(self) -> list[str]:
        return list(self._ports)

    async def fetch(self, config: ConnectionConfig) -> ParsedTable:
        return await self.get(config.type).fetch(config)


def default_registry(allow_demo: Optional[bool] = None) -> ConnectorRegistry:
    return ConnectorRegistry([
        SampleDatasetConnector(),
        DatabaseConnector(allow_demo),
        PlatformConnector(allow_demo),
    ])
