"""Shared fixtures: in-memory ledger database, fake S3 client and fake Groq client."""

import io
import json
import re
from collections.abc import Callable, Iterator
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.agents import GroqEnrichmentAgent
from app.core.db import Base
from app.core.settings import Settings
from app.services.ledger_writer import LedgerWriter
from app.services.s3_file_service import S3FileService
from app.workers.pipeline import StatementPipeline

OWNER_ID = "user-1234-abcd"

STATEMENT_TEXT = """First National Bank
Statement Period: March 2024
Date  Description  Amount
03/01 PAYROLL DEPOSIT ACME CORP 2,500.00
03/03 GROCERY   MART #12 -$82.17
03/14 COFFEE SHOP -$4.50
03/20 HIGH ROLLER CASINO -$1,950.00
Ending balance
"""

OVERLAP_TEXT = """First National Bank
Statement Period: March-April 2024
03/14 COFFEE SHOP -$4.50
03/20 HIGH ROLLER CASINO -$1,950.00
04/02 ELECTRIC UTILITY CO -$120.33
"""


class FakeS3Client:
    """Minimal stand-in for the boto3 S3 client used by S3FileService."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], tuple[bytes, dict[str, str]]] = {}

    def put(self, key: str, data: bytes, metadata: dict[str, str] | None = None, bucket: str = "statements") -> None:
        self.objects[(bucket, key)] = (data, metadata or {})

    def get_object(self, Bucket: str, Key: str) -> dict:  # noqa: N803
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}}, "GetObject")
        data, metadata = self.objects[(Bucket, Key)]
        return {"Body": io.BytesIO(data), "Metadata": dict(metadata)}


def classify(description: str) -> dict:
    """Deterministic classification used by the fake LLM."""
    if "CASINO" in description:
        return {"category": "Entertainment", "is_anomaly": True, "anomaly_reason": "Unusually large gambling charge"}
    if "PAYROLL" in description:
        return {"category": "Income", "is_anomaly": False, "anomaly_reason": None}
    return {"category": "Other", "is_anomaly": False, "anomaly_reason": None}


def default_responder(messages: list[dict]) -> str:
    """Answer a batch prompt with one classification per listed transaction."""
    user_prompt = messages[-1]["content"]
    descriptions = re.findall(r'^- Date: .*?, Description: "(.*)", Amount: ', user_prompt, re.MULTILINE)
    return json.dumps({"transactions": [classify(d) for d in descriptions]})


class FakeLLMClient:
    """Mimics ``groq.Groq().chat.completions.create`` for non-streaming calls."""

    def __init__(self, responder: Callable[[list[dict]], str] = default_responder) -> None:
        self.responder = responder
        self.calls: list[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs: object) -> SimpleNamespace:
        self.calls.append(kwargs)
        content = self.responder(kwargs["messages"])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        groq_api_key="test-key",
        enrichment_batch_size=2,
        enrichment_max_workers=1,
        database_url="sqlite://",
        s3_bucket="statements",
    )


@pytest.fixture
def session_factory() -> Iterator[sessionmaker]:
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def ledger(session_factory: sessionmaker) -> LedgerWriter:
    return LedgerWriter(session_factory)


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def store(s3_client: FakeS3Client, settings: Settings) -> S3FileService:
    return S3FileService(settings, client=s3_client)


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def agent(llm_client: FakeLLMClient, settings: Settings) -> GroqEnrichmentAgent:
    return GroqEnrichmentAgent(llm_client, settings)


@pytest.fixture
def pipeline(store: S3FileService, ledger: LedgerWriter, agent: GroqEnrichmentAgent) -> StatementPipeline:
    return StatementPipeline(store=store, ledger=ledger, agent=agent)


def make_pdf(pages: list[list[str]]) -> bytes:
    """Build a small text PDF with one Helvetica line per entry, one page per list."""
    objects = ["", "", "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"]
    kids = []
    for lines in pages:
        content = "BT /F1 11 Tf 14 TL 72 720 Td " + " ".join(f"({line}) Tj T*" for line in lines) + " ET"
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents {len(objects) + 2} 0 R "
            "/Resources << /Font << /F1 3 0 R >> >> >>"
        )
        kids.append(f"{len(objects)} 0 R")
        objects.append(f"<< /Length {len(content)} >>\nstream\n{content}\nendstream")
    objects[0] = "<< /Type /Catalog /Pages 2 0 R >>"
    objects[1] = f"<< /Type /Pages /Kids [{' '.join(kids)}] /Count {len(kids)} >>"
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")
    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode()
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()
    return bytes(out)
