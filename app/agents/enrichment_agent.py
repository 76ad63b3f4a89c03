"""GroqEnrichmentAgent: LLM-backed categorization and anomaly detection for transactions.

This module defines the GroqEnrichmentAgent class, which sends batches of normalized
transactions to a Groq-hosted chat model and maps the positional JSON response back onto
the batch. A failed or malformed response degrades the whole batch to the default
enrichment; it is logged and never raised, so one bad batch cannot fail a document.
"""

import json
import re

from groq import Groq

from app.agents.base import BaseAgent
from app.agents.prompts import (
    SYSTEM_PROMPT,
    TRANSACTION_LINE_TEMPLATE,
    USER_PROMPT_LOG_LABEL,
    USER_PROMPT_TEMPLATE,
)
from app.core.models import DEFAULT_CATEGORY, Enrichment, NormalizedTransaction
from app.core.settings import Settings
from app.core.utils import get_logger, truncate

MAX_OUTPUT_LOG_LEN = 300

logger = get_logger("statement-etl.agent")


def _get_color(color: str) -> str:
    try:
        from colorlog.escape_codes import escape_codes as _codes

        return _codes.get(color, "")
    except ImportError:
        return ""


def _coerce_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return False


def build_user_prompt(batch: list[NormalizedTransaction]) -> str:
    """Render the user prompt listing a batch of transactions."""
    lines = [
        TRANSACTION_LINE_TEMPLATE.format(date=txn.date, description=txn.description.replace('"', "'"), amount=txn.amount)
        for txn in batch
    ]
    return USER_PROMPT_TEMPLATE.format(count=len(batch), transaction_list="\n".join(lines))


def parse_enrichment_entry(entry: object) -> Enrichment:
    """Convert one entry of the model's ``transactions`` array into an Enrichment."""
    if not isinstance(entry, dict):
        return Enrichment()
    category = entry.get("category")
    category = category.strip() if isinstance(category, str) and category.strip() else DEFAULT_CATEGORY
    is_anomaly = _coerce_bool(entry.get("is_anomaly"))
    reason = entry.get("anomaly_reason")
    reason = reason.strip() if isinstance(reason, str) and reason.strip() else None
    return Enrichment(category=category, is_anomaly=is_anomaly, anomaly_reason=reason)


def parse_enrichment_response(raw_output: str, size: int) -> list[Enrichment]:
    """Map the model output onto ``size`` positional enrichments.

    Raises ValueError when the output carries no usable ``transactions`` array. Missing
    entries get the default enrichment and surplus entries are ignored.
    """
    data = _load_json_object(raw_output)
    entries = data.get("transactions")
    if not isinstance(entries, list):
        msg = f"LLM output has no 'transactions' array: {truncate(raw_output, MAX_OUTPUT_LOG_LEN)}"
        raise ValueError(msg)
    return [parse_enrichment_entry(entries[i]) if i < len(entries) else Enrichment() for i in range(size)]


def _load_json_object(raw_output: str) -> dict:
    try:
        data = json.loads(raw_output)
    except json.JSONDecodeError:
        # Tolerate prose around the object.
        match = re.search(r"\{.*\}", raw_output, re.DOTALL)
        if not match:
            msg = f"No JSON object in LLM output: {truncate(raw_output, MAX_OUTPUT_LOG_LEN)}"
            raise ValueError(msg) from None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            msg = f"Failed to parse JSON from LLM output: {exc}"
            raise ValueError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise ValueError(msg)
    return data


class GroqEnrichmentAgent(BaseAgent):
    """Agent responsible for LLM-based categorization and anomaly flagging of transactions."""

    def __init__(self, llm_client: object, settings: Settings) -> None:
        """Initialize the agent with an LLM client and settings."""
        super().__init__(batch_size=settings.enrichment_batch_size, max_workers=settings.enrichment_max_workers)
        self.llm_client = llm_client
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "GroqEnrichmentAgent":
        """Build the agent with a Groq client for the configured API key."""
        return cls(Groq(api_key=settings.groq_api_key), settings)

    def _call_llm(self, batch: list[NormalizedTransaction]) -> str:
        completion = self.llm_client.chat.completions.create(
            model=self.settings.enrichment_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(batch)},
            ],
            temperature=self.settings.enrichment_temperature,
            max_completion_tokens=self.settings.enrichment_max_completion_tokens,
            response_format={"type": "json_object"},
            stream=False,
        )
        return completion.choices[0].message.content or ""

    def enrich_batch(self, batch: list[NormalizedTransaction], batch_label: str = "") -> list[Enrichment]:
        """Classify one batch, falling back to the default enrichment on any failure."""
        yellow = _get_color("yellow")
        green = _get_color("green")
        reset = _get_color("reset")
        logger.info(f"{yellow}{batch_label}PROMPT: {USER_PROMPT_LOG_LABEL} ({len(batch)} transactions){reset}")
        try:
            raw_output = self._call_llm(batch)
            logger.info(f"{green}{batch_label}OUTPUT: {truncate(raw_output, MAX_OUTPUT_LOG_LEN)}{reset}")
            enrichments = parse_enrichment_response(raw_output, len(batch))
        except Exception:
            logger.warning(f"{batch_label}AI enrichment failed, using default enrichment for batch", exc_info=True)
            return [Enrichment() for _ in batch]
        flagged = sum(1 for e in enrichments if e.is_anomaly)
        logger.info(f"{green}{batch_label}AGENT: enriched {len(enrichments)} transactions, {flagged} anomalies{reset}")
        return enrichments
