"""
Raw message parsing for archived mailing-list messages.

Two entry points:
  - ``parse_identity`` reads only the headers needed to decide whether a
    message is interesting (Message-ID, References, In-Reply-To)
  - ``parse_message`` does the full parse for messages that will be posted:
    decoded headers, sender display name and a plain-text body with the
    transfer encoding (base64 / quoted-printable) resolved
"""

from __future__ import annotations
import email
import email.policy
import re
from dataclasses import dataclass, field
from email.message import Message
from email.parser import HeaderParser
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from inbox_mirror.logging import logger

__all__ = [
    "MessageParseError",
    "ParsedMessage",
    "parse_identity",
    "parse_message",
    "decode_part",
    "sender_name",
]

_MSGID_RE = re.compile(r"<([^<>\s]+)>")
_ADDRESS_RE = re.compile(r" *<.*>")


class MessageParseError(Exception):
    """Raised when a raw message cannot be parsed into something usable."""
    pass


@dataclass
class ParsedMessage:
    message_id: str
    references: List[str] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    from_name: Optional[str] = None


def _extract_ids(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return _MSGID_RE.findall(value)


def _unbracket(value: str) -> str:
    value = " ".join(value.split())
    m = re.fullmatch(r"<(.*)>", value)
    return m.group(1) if m else value


def parse_identity(raw: str) -> Tuple[str, List[str]]:
    """
    Extract the Message-ID and the ids the message refers to.

    References come from ``References`` (in order) followed by
    ``In-Reply-To``, de-duplicated, without the message's own id.

    Raises:
        MessageParseError: If the header block is unusable or has no Message-ID
    """
    try:
        headers = HeaderParser(policy=email.policy.compat32).parsestr(raw, headersonly=True)
    except Exception as e:  # email parser may raise anything on garbage input
        raise MessageParseError(f"Unparsable headers: {e}") from e

    raw_id = headers.get("Message-ID")
    if not raw_id or not str(raw_id).strip():
        raise MessageParseError("No Message-ID found")
    message_id = _unbracket(str(raw_id))

    references: List[str] = []
    seen = {message_id}
    for header in ("References", "In-Reply-To"):
        for ref in _extract_ids(headers.get(header)):
            if ref not in seen:
                seen.add(ref)
                references.append(ref)
    return message_id, references


def _html_to_text(html_str: str) -> str:
    """Flatten an HTML body to readable plain text."""
    soup = BeautifulSoup(html_str, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for p in soup.find_all("p"):
        if p.text and not p.text.endswith("\n"):
            p.append("\n")
    text = soup.get_text(separator="", strip=False)
    return re.sub(r"\n{3,}", "\n\n", text).strip() + "\n"


def decode_part(part: Message) -> str:
    """
    Return the text of a single MIME part.

    The Content-Transfer-Encoding is undone (base64, quoted-printable with
    soft line breaks removed) and the bytes are decoded with the part's
    charset, falling back to UTF-8.
    """
    payload = part.get_payload(decode=True)
    if payload is None:
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        logger.debug(f"Unknown charset '{charset}', decoding as UTF-8")
        return payload.decode("utf-8", errors="replace")


def sender_name(from_header: Optional[str]) -> Optional[str]:
    """
    Strip the address from a From header, keeping the display name.

    ``"Jane Doe <jane@example.org>"`` becomes ``"Jane Doe"``; a bare address
    is returned as-is. Quotes around the name are dropped.
    """
    if not from_header:
        return None
    name = _ADDRESS_RE.sub("", " ".join(str(from_header).split())).strip()
    if len(name) >= 2 and name[0] == name[-1] == '"':
        name = name[1:-1].strip()
    return name or None


def parse_message(raw: str) -> ParsedMessage:
    """
    Fully parse a raw message.

    Raises:
        MessageParseError: If the message has no Message-ID or cannot be parsed
    """
    message_id, references = parse_identity(raw)
    try:
        msg = email.message_from_string(raw, policy=email.policy.default)
        headers = {k: str(v) for k, v in msg.items()}
    except Exception as e:  # header objects are built lazily and may fail on defects
        raise MessageParseError(f"Unparsable message {message_id}: {e}") from e

    body = ""
    part = msg.get_body(preferencelist=("plain", "html"))
    if part is not None:
        text = decode_part(part)
        body = _html_to_text(text) if part.get_content_subtype() == "html" else text
    elif not msg.is_multipart():
        body = decode_part(msg)

    return ParsedMessage(
        message_id=message_id,
        references=references,
        headers=headers,
        body=body,
        from_name=sender_name(headers.get("From")),
    )
