"""
Image Intake
Holds the single chart image selected by the user
"""
import logging
import mimetypes
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from frontend.models import ImageFile

logger = logging.getLogger(__name__)


class ImageIntake:
    """
    One image at a time, dropped or picked from disk

    Files whose declared type does not start with ``image/`` are ignored and
    the current selection is kept. Listeners are called with the new
    selection (or None) whenever it changes.
    """

    def __init__(self):
        self._selected: Optional[ImageFile] = None
        self._listeners: List[Callable[[Optional[ImageFile]], None]] = []

    @property
    def selected(self) -> Optional[ImageFile]:
        return self._selected

    def on_change(self, listener: Callable[[Optional[ImageFile]], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, image: Optional[ImageFile]) -> None:
        self._selected = image
        for listener in list(self._listeners):
            listener(image)

    def select(self, image: ImageFile) -> bool:
        """File picker: replace the selection if the file is an image"""
        if not image.is_image:
            logger.debug(f"Ignoring non-image file {image.name} ({image.content_type})")
            return False
        self._set(image)
        return True

    def drop(self, files: Sequence[ImageFile]) -> bool:
        """Drag-and-drop: only the first dropped file is considered"""
        if not files:
            return False
        return self.select(files[0])

    def select_path(self, path: str) -> bool:
        file_path = Path(path).expanduser()
        content_type, _ = mimetypes.guess_type(file_path.name)
        return self.select(
            ImageFile(
                name=file_path.name,
                content_type=content_type or "application/octet-stream",
                data=file_path.read_bytes(),
            )
        )

    def clear(self) -> None:
        self._set(None)
