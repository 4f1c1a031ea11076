"""Uploaded files: category-request documents and news images."""

from __future__ import annotations

import base64
import io
import logging
import os
import uuid
from dataclasses import dataclass

from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx"}
ALLOWED_DOCUMENT_MIMETYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/octet-stream",
}
MAX_DOCUMENT_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_DOCUMENTS = 10

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5 MB
MAX_IMAGE_DIMENSIONS = (1280, 1280)

_PIL_FORMATS = {"jpg": "JPEG", "jpeg": "JPEG", "png": "PNG", "gif": "GIF", "webp": "WEBP"}


class UploadError(ValueError):
    """Archivo rechazado (mensaje apto para el usuario)."""


@dataclass
class StoredDocument:
    file_name: str
    file_path: str
    mime_type: str | None
    size_bytes: int


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[1].lower() if "." in filename else ""


def _stream_size(file) -> int:
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    return size


def validate_documents(files) -> None:
    """Comprueba tipo, tamano y cantidad antes de guardar nada."""
    if len(files) > MAX_DOCUMENTS:
        raise UploadError(f"Se permiten como máximo {MAX_DOCUMENTS} documentos.")
    for file in files:
        if _extension(file.filename or "") not in ALLOWED_DOCUMENT_EXTENSIONS:
            raise UploadError(
                f"Tipo de archivo no permitido: {file.filename}. Solo PDF, DOC o DOCX."
            )
        if file.mimetype and file.mimetype not in ALLOWED_DOCUMENT_MIMETYPES:
            raise UploadError(f"Tipo de archivo no permitido: {file.filename}.")
        if _stream_size(file) > MAX_DOCUMENT_SIZE:
            raise UploadError(f"El archivo {file.filename} supera el límite de 10 MB.")


def save_document(file, subfolder: str = "category_requests") -> StoredDocument:
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], subfolder)
    os.makedirs(folder, exist_ok=True)

    original_name = file.filename or "documento"
    safe_name = secure_filename(original_name) or f"documento.{_extension(original_name)}"
    stored_name = f"{uuid.uuid4().hex}_{safe_name}"
    path = os.path.join(folder, stored_name)

    size = _stream_size(file)
    file.save(path)
    return StoredDocument(
        file_name=original_name,
        file_path=os.path.join(subfolder, stored_name),
        mime_type=file.mimetype,
        size_bytes=size,
    )


def delete_stored_files(relative_paths) -> None:
    """Best-effort cleanup after a failed transaction."""
    root = current_app.config["UPLOAD_FOLDER"]
    for relative in relative_paths:
        try:
            os.remove(os.path.join(root, relative))
        except OSError:
            logger.warning("Could not remove uploaded file %s", relative)


def image_to_data_uri(file) -> str:
    """
    Valida la imagen con Pillow, la reduce a 1280x1280 como maximo y la
    devuelve como data URI base64.
    """
    from PIL import Image, UnidentifiedImageError

    ext = _extension(file.filename or "")
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise UploadError("Solo se permiten imágenes (JPG, PNG, GIF o WebP).")
    if _stream_size(file) > MAX_IMAGE_SIZE:
        raise UploadError("La imagen supera el límite de 5 MB.")

    try:
        img = Image.open(file.stream)
        img.verify()  # ensure it's a real image
        file.stream.seek(0)
        img = Image.open(file.stream)
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise UploadError("El archivo no es una imagen válida.") from e

    img.thumbnail(MAX_IMAGE_DIMENSIONS, Image.LANCZOS)

    pil_format = _PIL_FORMATS[ext]
    if pil_format == "JPEG" and img.mode in ("RGBA", "P", "LA"):
        img = img.convert("RGB")

    buffer = io.BytesIO()
    img.save(buffer, format=pil_format, quality=85)
    mime = "image/jpeg" if pil_format == "JPEG" else f"image/{pil_format.lower()}"
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:{mime};base64,{encoded}"
