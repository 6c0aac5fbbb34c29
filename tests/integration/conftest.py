"""Integration test fixtures — A Docker-based Elasticsearch seeded with mock material.

Expects the engine to be running, e.g.:
    docker run -d -p 9200:9200 -e discovery.type=single-node -e xpack.security.enabled=false elasticsearch:8.13.4

Seed data is loaded directly over HTTP on first use, so the fixtures do not
depend on the code under test.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx
import pytest

ELASTICSEARCH_HOST = "http://localhost:9200"
TEST_INDEX = "distant-test-material"

MOCK_MATERIAL: list[dict[str, Any]] = [
    {
        "dbId": 1,
        "uniqueId": "johnson2024",
        "uniqueIdType": "citekey",
        "title": "Advances in Solar Nowcasting Using Deep Learning",
        "text": (
            "This paper presents a novel deep learning approach for solar irradiance "
            "nowcasting using satellite imagery."
        ),
        "fileName": "solar-nowcasting.pdf",
        "filePath": "/library/solar-nowcasting.pdf",
        "tags": ["solar energy", "deep learning"],
    },
    {
        "dbId": 2,
        "uniqueId": "smith2024",
        "uniqueIdType": "citekey",
        "title": "Transformer Models for Natural Language Understanding",
        "text": "We survey recent advances in transformer-based models for natural language understanding.",
        "fileName": "transformers-nlu.pdf",
        "filePath": "/library/transformers-nlu.pdf",
        "tags": ["NLP", "transformers"],
    },
    {
        "dbId": 3,
        "uniqueId": "zhang2024",
        "uniqueIdType": "citekey",
        "title": "Federated Learning for Privacy-Preserving Medical Imaging",
        "text": "Federated averaging across hospital sites achieves diagnostic accuracy close to centralized training.",
        "fileName": "federated-medical.pdf",
        "filePath": "/library/federated-medical.pdf",
        "tags": ["federated learning", "privacy"],
    },
    {
        "dbId": 4,
        "uniqueId": "lee2024",
        "uniqueIdType": "citekey",
        "title": "Reinforcement Learning for Robotic Manipulation",
        "text": "A sim-to-real reinforcement learning framework for dexterous robotic manipulation.",
        "fileName": "rl-robotics.pdf",
        "filePath": "/library/rl-robotics.pdf",
        "tags": ["reinforcement learning", "robotics"],
    },
    {
        "dbId": 5,
        "uniqueId": "brown2024",
        "uniqueIdType": "citekey",
        "title": "Graph Neural Networks for Drug Discovery",
        "text": "Graph neural networks applied to molecular property prediction for drug discovery.",
        "fileName": "gnn-drug.pdf",
        "filePath": "/library/gnn-drug.pdf",
        "tags": ["graph neural networks", "drug discovery"],
    },
]


def _wait_for_service(url: str, timeout: float = 60.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=10)
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(2)
    return False


async def _seed_elasticsearch(host: str = ELASTICSEARCH_HOST, index: str = TEST_INDEX) -> None:
    async with httpx.AsyncClient(base_url=host, timeout=30) as client:
        await client.delete(f"/{index}", params={"ignore_unavailable": "true"})

        # Dynamic mapping gives text fields a '.keyword' subfield
        for doc in MOCK_MATERIAL:
            resp = await client.put(f"/{index}/_doc/{doc['uniqueId']}", json=doc)
            resp.raise_for_status()

        await client.post(f"/{index}/_refresh")


@pytest.fixture(scope="session")
def elasticsearch_ready() -> str:
    """Ensure Elasticsearch is running and seeded."""
    if not _wait_for_service(ELASTICSEARCH_HOST, timeout=10.0):
        pytest.skip(f"Elasticsearch not available at {ELASTICSEARCH_HOST}")
    asyncio.run(_seed_elasticsearch())
    return ELASTICSEARCH_HOST
