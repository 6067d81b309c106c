"""
Проверка изображений перед загрузкой на сервер.
"""

from dataclasses import dataclass
from typing import Sequence

from repair_client.core.errors import FormValidationError
from repair_client.models.request import MAX_REQUEST_IMAGES

ALLOWED_IMAGE_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5 МБ


@dataclass(frozen=True)
class ImageFile:
    """Файл изображения, подготовленный к загрузке."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_images(files: Sequence[ImageFile], already_attached: int = 0) -> None:
    """
    Проверяет количество, тип и размер файлов.

    Args:
        files: Новые файлы.
        already_attached: Сколько изображений уже прикреплено к черновику заявки.

    Raises:
        FormValidationError: Если хотя бы один файл не проходит проверку.
    """
    if not files:
        raise FormValidationError("Выберите хотя бы одно изображение.")
    if already_attached + len(files) > MAX_REQUEST_IMAGES:
        raise FormValidationError(
            f"Можно прикрепить не более {MAX_REQUEST_IMAGES} изображений."
        )
    for file in files:
        if file.content_type not in ALLOWED_IMAGE_TYPES:
            raise FormValidationError(
                "Поддерживаются только изображения (JPG, PNG, GIF, WebP)."
            )
        if file.size > MAX_IMAGE_SIZE:
            raise FormValidationError("Размер файла не должен превышать 5 МБ.")
