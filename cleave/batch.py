"""Sequential batch conversion with per-item failure isolation."""
import itertools
import logging
import mimetypes
import threading
import time
import uuid
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from cleave.annotate import Annotator, NullAnnotator
from cleave.archive import build_archive, output_filename
from cleave.pipeline import convert_image
from cleave.types import (
    Annotation,
    CodecError,
    ConversionSettings,
    ImageSource,
    ItemStatus,
    ProcessedResult,
    QueueItem,
)

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.gif', '.tiff', '.tif', '.webp', '.avif'}

Converter = Callable[[ImageSource, ConversionSettings, Optional[Path]], bytes]

# Poll interval while waiting on an annotation future
_POLL_SECONDS = 0.05


def counter_ids(prefix: str = "item") -> Callable[[], str]:
    """Monotonically increasing ids: item-1, item-2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def uuid_ids() -> str:
    return uuid.uuid4().hex


def is_image_name(name: str) -> bool:
    """True if a file name looks like an image, by extension or MIME guess."""
    if Path(name).suffix.lower() in IMAGE_EXTENSIONS:
        return True
    mime, _ = mimetypes.guess_type(name)
    return bool(mime) and mime.startswith('image/')


class BatchProcessor:
    """
    Queue of images converted one at a time, in submission order.

    Each item owns its buffers for the duration of its conversion. Any
    failure is caught at the item boundary and recorded on that item, so a
    batch always runs to the end of the queue. Failed items stay in the
    queue and are retried by the next call to process().
    """

    def __init__(
        self,
        settings: Optional[ConversionSettings] = None,
        converter: Converter = convert_image,
        annotator: Optional[Annotator] = None,
        id_factory: Optional[Callable[[], str]] = None,
        annotation_timeout: float = 60.0,
        debug_dir: Optional[Path] = None,
    ):
        """
        Args:
            settings: Conversion settings for every item
            converter: Callable (source, settings, debug_dir) -> bytes
            annotator: Annotation client used when settings.use_ai_analysis
            id_factory: Callable producing unique item ids
            annotation_timeout: Seconds to wait for one annotation
            debug_dir: If set, vector tracer stages are saved per item here
        """
        self._settings = settings or ConversionSettings()
        self.converter = converter
        self.annotator = annotator or NullAnnotator()
        self.id_factory = id_factory or counter_ids()
        self.annotation_timeout = annotation_timeout
        self.debug_dir = Path(debug_dir) if debug_dir else None
        self.queue: List[QueueItem] = []

        self._executor: Optional[ThreadPoolExecutor] = None
        self._annotation: Optional[Future] = None
        self._cancel_annotation = threading.Event()

    @property
    def settings(self) -> ConversionSettings:
        return self._settings

    @settings.setter
    def settings(self, settings: ConversionSettings) -> None:
        self.update_settings(settings)

    def update_settings(self, settings: ConversionSettings) -> None:
        """
        Replace the conversion settings.

        Results made with the old settings no longer apply, so every item
        goes back to IDLE and the next process() call converts it again.
        """
        if settings == self._settings:
            return
        self._settings = settings
        for item in self.queue:
            item.status = ItemStatus.IDLE
            item.result = None
            item.error = None
        if self.queue:
            logger.info(f"Settings changed, {len(self.queue)} item(s) queued for reconversion")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        """Stop the annotation worker."""
        self.cancel_annotation()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    # Queue management

    def add(self, source: ImageSource, name: Optional[str] = None) -> Optional[QueueItem]:
        """
        Queue one image.

        Args:
            source: Path to an image file, or encoded image bytes
            name: Original file name (required for bytes)

        Returns:
            The new item, or None if the input is not an image
        """
        if isinstance(source, bytes):
            if not name:
                raise ValueError("name is required when adding raw bytes")
            size = len(source)
        else:
            source = Path(source)
            name = name or source.name
            size = source.stat().st_size if source.exists() else 0

        if not is_image_name(name):
            logger.warning(f"Skipping non-image input: {name}")
            return None

        item = QueueItem(id=self.id_factory(), name=name, source=source, original_size=size)
        self.queue.append(item)
        return item

    def add_all(self, sources: Iterable[Union[str, Path]]) -> List[QueueItem]:
        items = [self.add(source) for source in sources]
        return [item for item in items if item is not None]

    def remove(self, item_id: str) -> bool:
        before = len(self.queue)
        self.queue = [item for item in self.queue if item.id != item_id]
        return len(self.queue) < before

    def clear(self) -> None:
        self.queue = []

    def pending(self) -> List[QueueItem]:
        """Items that the next process() call will (re)convert."""
        return [item for item in self.queue if item.status in (ItemStatus.IDLE, ItemStatus.ERROR)]

    def completed(self) -> List[QueueItem]:
        return [item for item in self.queue if item.status == ItemStatus.COMPLETE]

    def failed(self) -> List[QueueItem]:
        return [item for item in self.queue if item.status == ItemStatus.ERROR]

    @property
    def is_all_complete(self) -> bool:
        return bool(self.queue) and all(item.status == ItemStatus.COMPLETE for item in self.queue)

    # Processing

    def process(self) -> List[QueueItem]:
        """
        Convert every pending item, strictly one after another.

        Returns:
            The items handled by this call, in queue order
        """
        items = self.pending()
        if not items:
            return []

        for item in items:
            item.status = ItemStatus.PROCESSING

        logger.info(f"Processing {len(items)} item(s) as {self.settings.format}")
        for position, item in enumerate(items, start=1):
            logger.info(f"[{position}/{len(items)}] {item.name}")
            self._process_item(item)

        logger.info(
            f"Batch finished: {len(self.completed())} complete, {len(self.failed())} failed"
        )
        return items

    def _process_item(self, item: QueueItem) -> None:
        start_time = time.time()
        try:
            debug_dir = None
            if self.debug_dir is not None:
                debug_dir = self.debug_dir / f"{Path(item.name).stem}_debug"

            data = self.converter(item.source, self.settings, debug_dir)
            if not data:
                raise CodecError("Conversion produced no output")

            annotation = Annotation()
            if self.settings.use_ai_analysis:
                annotation = self._annotate(item)

            item.result = ProcessedResult(
                data=data,
                mime_type=self.settings.format,
                description=annotation.description,
                tags=list(annotation.tags),
            )
            item.status = ItemStatus.COMPLETE
            item.error = None
            logger.info(
                f"  Done in {time.time() - start_time:.2f}s: "
                f"{item.original_size} -> {item.result.size} bytes"
            )

        except Exception as e:
            logger.exception(f"  Failed: {item.name}")
            item.result = None
            item.status = ItemStatus.ERROR
            item.error = str(e) or e.__class__.__name__

    # Annotation

    def _annotate(self, item: QueueItem) -> Annotation:
        """Run the annotator as a cancellable task and wait for it; never raises."""
        mime_type = mimetypes.guess_type(item.name)[0] or 'application/octet-stream'

        try:
            data = item.read_bytes()
            future = self.submit_annotation(data, mime_type)
            return self._wait_annotation(future)
        except CancelledError:
            logger.warning(f"  Annotation cancelled for {item.id}")
        except TimeoutError:
            logger.warning(f"  Annotation timed out for {item.id}")
        except Exception as e:
            logger.warning(f"  Annotation failed for {item.id}: {e}")
        return Annotation()

    def submit_annotation(self, data: bytes, mime_type: str) -> Future:
        """Start an annotation in the background and return its future."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cleave-annotate")
        self._cancel_annotation.clear()
        self._annotation = self._executor.submit(self.annotator.analyze, data, mime_type)
        return self._annotation

    def _wait_annotation(self, future: Future) -> Annotation:
        deadline = time.monotonic() + self.annotation_timeout
        while not future.done():
            if self._cancel_annotation.is_set():
                self._abandon(future)
                raise CancelledError()
            if time.monotonic() >= deadline:
                self._abandon(future)
                raise TimeoutError(f"no annotation after {self.annotation_timeout}s")
            self._cancel_annotation.wait(_POLL_SECONDS)
        return future.result()

    def _abandon(self, future: Future) -> None:
        # A running call cannot be interrupted; leave it on the old worker
        # and give the next annotation a fresh one.
        if not future.cancel() and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def cancel_annotation(self) -> bool:
        """
        Abandon the in-flight annotation, if any.

        The item it belongs to still completes, with an empty annotation.
        """
        future = self._annotation
        if future is None or future.done():
            return False
        self._cancel_annotation.set()
        future.cancel()
        return True

    # Outputs

    def outputs(self) -> Dict[str, bytes]:
        """Completed results keyed by output file name."""
        return {
            output_filename(item.name, item.result.mime_type): item.result.data
            for item in self.completed()
        }

    def archive(self) -> bytes:
        """ZIP archive of all completed results."""
        return build_archive(self.outputs())
