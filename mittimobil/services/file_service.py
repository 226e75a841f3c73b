from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from flask import current_app
from PIL import Image
from werkzeug.utils import secure_filename

from mittimobil.errors import ValidationError

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}
MAX_IMAGES_PER_LISTING = 5


class FileService:
    """Listing photos.

    A batch is checked in full (count, extension, decodable bytes) before
    anything is written, so a rejected upload never leaves files behind.
    Stored paths are relative to the parent of ``upload_root``.
    """

    @staticmethod
    def _extension(storage):
        filename = secure_filename(storage.filename)
        extension = filename.rsplit(".", 1)[1].lower() if "." in filename else ""
        if extension not in ALLOWED_EXTENSIONS:
            raise ValidationError("Unsupported image format.")
        return extension

    @staticmethod
    def _verify(storage):
        try:
            Image.open(storage.stream).verify()
        except Exception as exc:
            raise ValidationError("Invalid image file.") from exc
        finally:
            storage.stream.seek(0)

    @classmethod
    def check_images(cls, storages):
        uploads = [item for item in storages or [] if item and item.filename]
        if len(uploads) > MAX_IMAGES_PER_LISTING:
            raise ValidationError(f"At most {MAX_IMAGES_PER_LISTING} images per listing.")
        checked = []
        for storage in uploads:
            extension = cls._extension(storage)
            cls._verify(storage)
            checked.append((storage, extension))
        return checked

    @staticmethod
    def store_images(checked, upload_root):
        if not checked:
            return []
        root = Path(upload_root)
        dated = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        (root / dated).mkdir(parents=True, exist_ok=True)
        stored = []
        for storage, extension in checked:
            relative = f"{dated}/{uuid4().hex}.{extension}"
            storage.save(root / relative)
            stored.append(f"{root.name}/{relative}")
        return stored

    @staticmethod
    def discard(paths, upload_root):
        base = Path(upload_root).parent
        for path in paths:
            (base / path).unlink(missing_ok=True)
        if paths:
            current_app.logger.info("Discarded %d uploaded image(s)", len(paths))
