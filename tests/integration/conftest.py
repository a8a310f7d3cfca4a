import os
import uuid
from collections.abc import Generator
from typing import Any

import pytest
from elasticsearch import Elasticsearch
from kombu import Connection

from docflow.messaging.transport import QueueTransport
from docflow.search.index import SearchIndex


@pytest.fixture(scope="session")
def elasticsearch_client() -> Generator[Elasticsearch, None, None]:
    url = os.environ.get("ELASTICSEARCH_URL")
    if not url:
        pytest.skip("ELASTICSEARCH_URL not set; search engine integration tests skipped")
    client = Elasticsearch(url, request_timeout=10)
    try:
        client.info()
    except Exception as e:
        pytest.skip(f"Elasticsearch not available: {e}")
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def search_index(elasticsearch_client: Elasticsearch) -> Generator[SearchIndex, None, None]:
    index_name = f"ocr-results-test-{uuid.uuid4().hex[:8]}"
    index = SearchIndex(elasticsearch_client, index_name)
    index.ensure_index()
    try:
        yield index
    finally:
        elasticsearch_client.indices.delete(index=index_name, ignore_unavailable=True)


@pytest.fixture
def broker_queues() -> dict[str, str]:
    suffix = uuid.uuid4().hex[:8]
    return {
        "documentReadyQueue": f"it-ocr-{suffix}",
        "ocrResultsQueue": f"it-results-{suffix}",
    }


@pytest.fixture
def broker_url() -> str:
    url = os.environ.get("BROKER_URL")
    if not url:
        pytest.skip("BROKER_URL not set; broker integration tests skipped")
    return url


@pytest.fixture
def broker_channel(broker_url: str) -> Generator[Any, None, None]:
    """A channel on its own connection for publishing raw bodies and inspecting queues."""
    with Connection(broker_url) as connection:
        try:
            connection.ensure_connection(max_retries=1)
        except Exception as e:
            pytest.skip(f"Broker not available: {e}")
        channel = connection.channel()
        try:
            yield channel
        finally:
            channel.close()


@pytest.fixture
def broker_transport(
    broker_url: str,
    broker_queues: dict[str, str],
    broker_channel: Any,
) -> Generator[QueueTransport, None, None]:
    transport = QueueTransport(Connection(broker_url, heartbeat=10), broker_queues)
    try:
        transport.connect(max_retries=1)
    except Exception as e:
        pytest.skip(f"Broker not available: {e}")
    try:
        yield transport
    finally:
        transport.close()
        for name in broker_queues.values():
            for queue in (name, f"{name}-dlq"):
                broker_channel.queue_delete(queue=queue)
