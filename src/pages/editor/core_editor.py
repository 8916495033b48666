from __future__ import annotations

import copy
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from src import profile_store
from src.auth_token import Principal, authenticate_request
from src.content_blocks import render_block_html
from src.media_ingestion import (
    EDITOR_MAX_UPLOAD_BYTES,
    MISSING_FILE_MESSAGE,
    MediaReference,
    MediaValidationError,
    ingest,
    validate_upload,
)
from src.media_storage import MediaHost
from src.profile_schema import ProfileDocument

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"
PERSONAS = ("web2", "web3")
PERSONAL_FIELDS = (
    "name",
    "title",
    "email",
    "showEmail",
    "phone",
    "showPhone",
    "image",
    "enable3D",
    "enableGradient",
    "borderStyle",
)
LOGIN_AGAIN_MESSAGE = "Please log in again"


class EditorAuthError(PermissionError):
    pass


def auth_header_from_cookies(cookies: Optional[Mapping[str, str]]) -> Optional[str]:
    token = (cookies or {}).get(AUTH_COOKIE)
    if not token:
        return None
    return f"Bearer {token}"


def require_editor_principal(authorization: Optional[str]) -> Principal:
    principal = authenticate_request(authorization)
    if principal is None:
        raise EditorAuthError(LOGIN_AGAIN_MESSAGE)
    return principal


def read_local_upload(path: str) -> tuple[bytes, str, int]:
    """
    Apply the editor's own checks to a picked file before anything is sent.
    The 5MB ceiling here is stricter than the server's.
    """
    source = Path((path or "").strip())
    if not path or not source.is_file():
        raise MediaValidationError(MISSING_FILE_MESSAGE)
    mime_type = mimetypes.guess_type(source.name)[0] or ""
    size = source.stat().st_size
    data = source.read_bytes()
    validate_upload(data, mime_type, size, max_bytes=EDITOR_MAX_UPLOAD_BYTES)
    return data, mime_type, size


def upload_profile_image(path: str, authorization: Optional[str], host: MediaHost) -> MediaReference:
    require_editor_principal(authorization)
    data, mime_type, size = read_local_upload(path)
    return ingest(data, mime_type, size, file_name=Path(path).name, host=host)


def personal_fields(document: Mapping[str, Any], mode: str) -> Dict[str, Any]:
    personal = (document.get(mode) or {}).get("personal") or {}
    return {name: personal.get(name) for name in PERSONAL_FIELDS}


def merge_personal(document: Mapping[str, Any], mode: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a full document with `updates` applied to one persona's personal block."""
    if mode not in PERSONAS:
        raise ValueError(f"Unknown persona `{mode}`")
    merged = copy.deepcopy(dict(document))
    persona = merged.setdefault(mode, {})
    personal = dict(persona.get("personal") or {})
    personal.update({key: value for key, value in updates.items() if key in PERSONAL_FIELDS})
    if not personal.get("image"):
        personal["image"] = None
    persona["personal"] = personal
    return merged


def save_personal(mode: str, updates: Mapping[str, Any], authorization: Optional[str]) -> Dict[str, Any]:
    require_editor_principal(authorization)
    # Strict load: merging into the fallback default would overwrite real content.
    current = profile_store.load()
    merged = merge_personal(current, mode, updates)
    ProfileDocument.model_validate(merged)
    profile_store.save(merged)
    logger.info("Saved personal info for persona %s", mode)
    return merged


def preview_html(document: Mapping[str, Any], mode: str) -> str:
    sections = (document.get(mode) or {}).get("sections") or []
    parts = []
    for section in sections:
        section_glass = section.get("enableGlassEffect")
        blocks = "".join(render_block_html(block, section_glass) for block in section.get("blocks") or [])
        parts.append(f'<section class="profile-section">{blocks}</section>')
    return "".join(parts)
