"""Transaction extraction from statement documents.

PDF documents are read with pdfplumber; any other payload is treated as text that was
already extracted upstream (for example from an image) and decoded as UTF-8. Lines of the
form ``MM/DD <description> <amount>`` become transactions; everything else is skipped.
"""

import io
import re
from datetime import date
from decimal import Decimal, InvalidOperation

import pdfplumber

from app.core.errors import ParseFailureError
from app.core.models import ParsedTransaction
from app.core.utils import get_logger

logger = get_logger("statement-etl.parser")

PDF_MAGIC = b"%PDF"
YEAR_PATTERN = re.compile(r"\b(20\d{2})\b")
TRANSACTION_PATTERN = re.compile(r"(\d{2})/(\d{2})\s+(.+?)\s+([-+]?[$€£]?-?[\d,]+\.\d{2})")
_AMOUNT_NOISE = re.compile(r"[$€£,+\s]")


def parse_amount(raw: str) -> Decimal:
    """Parse a signed currency amount such as ``-$1,234.50``."""
    cleaned = _AMOUNT_NOISE.sub("", raw)
    negative = cleaned.count("-") % 2 == 1
    try:
        value = Decimal(cleaned.replace("-", ""))
    except InvalidOperation as exc:
        msg = f"Not a currency amount: {raw!r}"
        raise ValueError(msg) from exc
    return -value if negative else value


def infer_year(text: str, default: int | None = None) -> int:
    """Return the first four-digit year in the text, or the fallback year."""
    match = YEAR_PATTERN.search(text)
    if match:
        return int(match.group(1))
    return default if default is not None else date.today().year


class DocumentParser:
    """Extracts line-item transactions from raw document bytes."""

    def extract_text(self, data: bytes, key: str | None = None) -> str:
        """Extract plain text from a PDF or a UTF-8 text payload."""
        if not data:
            msg = "Document is empty"
            raise ParseFailureError(msg, key)
        if data.lstrip()[:4] == PDF_MAGIC:
            return self._extract_pdf_text(data, key)
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            msg = f"Document is neither a PDF nor UTF-8 text: {exc}"
            raise ParseFailureError(msg, key) from exc

    def _extract_pdf_text(self, data: bytes, key: str | None) -> str:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            msg = f"Unreadable PDF: {exc}"
            raise ParseFailureError(msg, key) from exc
        logger.info(f"Extracted text from {len(pages)} PDF page(s)")
        return "\n".join(pages)

    def parse_text(self, text: str, default_year: int | None = None) -> list[ParsedTransaction]:
        """Parse transactions from extracted text, in document order."""
        year = infer_year(text, default_year)
        transactions: list[ParsedTransaction] = []
        for line in text.splitlines():
            txn = self._parse_line(line, year)
            if txn is not None:
                transactions.append(txn)
        return transactions

    def _parse_line(self, line: str, year: int) -> ParsedTransaction | None:
        match = TRANSACTION_PATTERN.search(line)
        if not match:
            return None
        month, day, description, amount_str = match.groups()
        try:
            txn_date = date(year, int(month), int(day))
            amount = parse_amount(amount_str)
        except ValueError:
            logger.debug(f"Skipping transaction-shaped line with bad date or amount: {line!r}")
            return None
        return ParsedTransaction(date=txn_date.isoformat(), description=description.strip(), amount=amount)

    def parse(self, data: bytes, key: str | None = None) -> list[ParsedTransaction]:
        """Extract text from the document and parse its transactions."""
        text = self.extract_text(data, key)
        transactions = self.parse_text(text)
        logger.info(f"[ETL] PARSE: found {len(transactions)} potential transactions in {key or 'document'}")
        return transactions
