import re
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

from errors import FormatError, ValidationError

HEADER_PATTERN = re.compile(r"^(\w+)(\(([^)]+)\))?: (.+)$")

FORMAT_HELP = (
    "expected commit to follow:\n"
    "<type>[optional scope]: <description>\n"
    "[optional body]\n"
    "[optional footer]"
)


class Header(BaseModel):
    type: str
    scope: Optional[str] = None
    subject: str


class Commit(BaseModel):
    header: Header
    body: Optional[str] = None
    footer: Optional[str] = None


def _is_valid_string(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def parse_commit(message: str) -> Commit:
    """Parse a full commit message into header, body and footer.

    The header comes from the first line; body and footer are the second
    and third blank-line separated paragraphs.
    """
    if not _is_valid_string(message):
        raise FormatError("expected commit to be a non empty string")

    first_line = message.splitlines()[0]
    match = HEADER_PATTERN.match(first_line)
    if not match:
        raise FormatError(FORMAT_HELP)

    header = Header(type=match.group(1), scope=match.group(3), subject=match.group(4))
    paragraphs = message.replace("\r\n", "\n").split("\n\n")[1:]
    body = paragraphs[0] if len(paragraphs) > 0 else None
    footer = paragraphs[1] if len(paragraphs) > 1 else None
    return Commit(header=header, body=body, footer=footer)


def format_header(header: Header) -> str:
    if header.scope:
        return f"{header.type}({header.scope}): {header.subject}"
    return f"{header.type}: {header.subject}"


def check_header(header: Union[Header, Commit, Mapping[str, Any]]) -> Header:
    """Validate a header, or the header wrapped by a commit."""
    if isinstance(header, Commit):
        header = header.header
    elif isinstance(header, Mapping) and "header" in header:
        header = header["header"]

    if isinstance(header, Header):
        fields = header.model_dump()
    elif isinstance(header, Mapping):
        fields = dict(header)
    else:
        raise ValidationError("header", "expected header to be an object: { type, scope?, subject }")

    if not _is_valid_string(fields.get("type")):
        raise ValidationError("type", "header.type should be non empty string")
    if not _is_valid_string(fields.get("subject")):
        raise ValidationError("subject", "header.subject should be non empty string")

    scope = fields.get("scope")
    if scope is not None and not _is_valid_string(scope):
        raise ValidationError("scope", "header.scope should be non empty string when given")

    return Header(type=fields["type"], scope=scope, subject=fields["subject"])


def check_commit(commit: Commit) -> Commit:
    if not isinstance(commit, Commit):
        raise ValidationError("commit", "expected commit to be an object: { header, body?, footer? }")

    header = check_header(commit.header)
    if commit.body is not None and not isinstance(commit.body, str):
        raise ValidationError("body", "commit.body should be string when given")
    if commit.footer is not None and not isinstance(commit.footer, str):
        raise ValidationError("footer", "commit.footer should be string when given")

    return Commit(header=header, body=commit.body, footer=commit.footer)
