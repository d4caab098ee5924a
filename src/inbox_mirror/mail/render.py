"""
Markdown rendering of mailing-list messages as GitHub comments.
"""

from __future__ import annotations

from inbox_mirror.mail.parser import ParsedMessage

__all__ = ["body_to_markdown", "render_comment", "permalink"]

# Long enough that mail bodies quoting Markdown code fences stay literal
FENCE = "``````````"
FALLBACK_SENDER = "Somebody"
DEFAULT_ARCHIVE_URL = "https://public-inbox.org/git/"
DEFAULT_REPLY_TO_THIS_URL = "https://github.com/gitgitgadget/gitgitgadget/wiki/ReplyToThis"


def permalink(message_id: str, archive_url: str = DEFAULT_ARCHIVE_URL) -> str:
    """Public link to the archived copy of a message."""
    return f"{archive_url}{message_id}"


def body_to_markdown(body: str) -> str:
    """
    Fence a decoded message body as a literal block.

    Returns an empty string for an empty body.
    """
    if not body:
        return ""
    if not body.endswith("\n"):
        body += "\n"
    return f"{FENCE}\n{body}{FENCE}\n"


def render_comment(
    message: ParsedMessage,
    *,
    archive_url: str = DEFAULT_ARCHIVE_URL,
    reply_to_this_url: str = DEFAULT_REPLY_TO_THIS_URL,
) -> str:
    """
    Build the comment text for a message: attribution line, reply hint,
    then the fenced body.
    """
    sender = message.from_name or FALLBACK_SENDER
    header = (
        f"[On the Git mailing list]({permalink(message.message_id, archive_url)}), "
        f"{sender} wrote ([reply to this]({reply_to_this_url})):\n\n"
    )
    return header + body_to_markdown(message.body)
