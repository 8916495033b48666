import logging

import gradio as gr
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from src import profile_store
from src.css.utils import load_css
from src.media_ingestion import MediaIngestionError, MediaValidationError
from src.media_storage import default_media_host
from src.pages.editor.core_editor import (
    PERSONAS,
    EditorAuthError,
    auth_header_from_cookies,
    personal_fields,
    preview_html,
    save_personal,
    upload_profile_image,
)
from src.profile_schema import BorderStyle
from src.profile_store import ProfileStoreError

logger = logging.getLogger(__name__)

_MODE_LABELS = {
    "web2": "Web2 (Real You)",
    "web3": "Web3 (Persona)",
}


def _authorization(request: gr.Request | None):
    cookies = getattr(request, "cookies", None) if request is not None else None
    return auth_header_from_cookies(cookies)


def _load_fields(mode: str):
    fields = personal_fields(profile_store.load_or_default(), mode)
    return (
        fields["name"] or "",
        fields["title"] or "",
        fields["email"] or "",
        fields["showEmail"] is not False,
        fields["phone"] or "",
        fields["showPhone"] is not False,
        fields["image"] or "",
        bool(fields["enable3D"]),
        bool(fields["enableGradient"]),
        fields["borderStyle"] or BorderStyle.GRADIENT.value,
    )


def _preview(mode: str):
    return preview_html(profile_store.load_or_default(), mode)


def _upload(file_path, current_image: str, request: gr.Request):
    if not file_path:
        return gr.update(value=current_image), ""
    try:
        reference = upload_profile_image(file_path, _authorization(request), default_media_host())
    except (EditorAuthError, MediaValidationError) as exc:
        return gr.update(value=current_image), f"⚠️ {exc}"
    except MediaIngestionError as exc:
        return gr.update(value=current_image), f"⚠️ Failed to upload: {exc.details}"
    return gr.update(value=reference.url), f"Uploaded {reference.file_name} ({reference.width}x{reference.height})"


def _save(mode, name, title, email, show_email, phone, show_phone, image, enable_3d, enable_gradient, border_style, request: gr.Request):
    updates = {
        "name": name,
        "title": title,
        "email": email,
        "showEmail": bool(show_email),
        "phone": phone,
        "showPhone": bool(show_phone),
        "image": (image or "").strip() or None,
        "enable3D": bool(enable_3d),
        "enableGradient": bool(enable_gradient),
        "borderStyle": border_style,
    }
    try:
        save_personal(mode, updates, _authorization(request))
    except EditorAuthError as exc:
        return f"⚠️ {exc}"
    except ValidationError as exc:
        logger.warning("Editor save rejected for persona %s: %s", mode, exc)
        return "⚠️ Invalid profile document. Check the fields and try again."
    except (ProfileStoreError, SQLAlchemyError) as exc:
        logger.error("Editor save failed for persona %s: %s", mode, exc)
        # Edits stay in the form so the user can retry.
        return "⚠️ Failed to save profile. Your edits are still here; try again."
    return "Profile saved successfully"


def make_editor_app() -> gr.Blocks:
    editor_css = load_css("editor_page.css")
    with gr.Blocks(title="Portfolio Editor", css=editor_css) as editor_app:
        gr.Markdown("## Personal Information")
        mode = gr.Radio(
            choices=[(label, key) for key, label in _MODE_LABELS.items()],
            value=PERSONAS[0],
            label="Persona",
        )
        with gr.Row():
            with gr.Column(scale=1):
                upload = gr.File(label="Profile Photo", file_types=["image"], type="filepath")
                upload_status = gr.Markdown()
            with gr.Column(scale=2):
                image = gr.Textbox(label="Image URL", placeholder="Or paste image URL here")
                name = gr.Textbox(label="Name *")
                title = gr.Textbox(label="Title / Role *")
                email = gr.Textbox(label="Email Address *")
                show_email = gr.Checkbox(label="Show email on profile")
                phone = gr.Textbox(label="Contact Number", placeholder="+63 XXX-XXX-XXXX")
                show_phone = gr.Checkbox(label="Show phone on profile")
        with gr.Group(elem_classes=["visual-effects"]):
            enable_3d = gr.Checkbox(label="Enable 3D image effect (hover animation)")
            enable_gradient = gr.Checkbox(label="Enable border animation")
            border_style = gr.Dropdown(
                choices=[style.value for style in BorderStyle],
                label="Border style",
            )
        save_button = gr.Button("Save", variant="primary")
        save_status = gr.Markdown()
        preview = gr.HTML(elem_id="persona-preview")

        fields = [name, title, email, show_email, phone, show_phone, image, enable_3d, enable_gradient, border_style]
        editor_app.load(_load_fields, inputs=[mode], outputs=fields)
        mode.change(_load_fields, inputs=[mode], outputs=fields)
        editor_app.load(_preview, inputs=[mode], outputs=[preview])
        mode.change(_preview, inputs=[mode], outputs=[preview])
        upload.upload(_upload, inputs=[upload, image], outputs=[image, upload_status])
        save_button.click(_save, inputs=[mode, *fields], outputs=[save_status])

    return editor_app
