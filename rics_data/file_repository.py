"""On-disk cache of collected messages: temp files, bz2 archives and their index."""

from __future__ import annotations

import bz2
import hashlib
import json
import logging
import os
import re
import threading
from datetime import datetime
from pathlib import Path

from .models import DataCollectOption, OfflineDataInfo, RicsBusinessOption

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSED_SUBDIR = "compressed"
DEFAULT_TEMP_SUBDIR = "temp"
DEFAULT_MIN_COMPRESS_SIZE = 1024 * 1024
DEFAULT_RESYNC_THRESHOLD = 100

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_STRIPPED = str.maketrans("", "", "\r\n\t ")


def format_msg(msg: str) -> str:
    """Drop CR, LF, tab and space characters and end the text with a newline."""
    return msg.translate(_STRIPPED) + "\n"


def file_md5(path: str | os.PathLike[str]) -> str:
    """Return the hex MD5 digest of the file at ``path``."""
    digest = hashlib.md5()
    with open(path, "rb") as stream:
        for chunk in iter(lambda: stream.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _leading_number(text: str) -> float:
    match = _LEADING_NUMBER.match(text)
    return float(match.group(0)) if match else 0.0


def _file_size(path: str | os.PathLike[str]) -> int:
    try:
        return os.path.getsize(path) if os.path.isfile(path) else 0
    except OSError:
        return 0


def _compact_json(value: object) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


class FileRepository:
    """Stores overflowed messages per topic and tracks archives ready to upload.

    Archives in the compressed directory are indexed by MD5 in the order they
    were found or written; the first entry is the next one to send.
    """

    def __init__(
        self,
        option: DataCollectOption,
        business_option: RicsBusinessOption | None = None,
        compressed_subdir: str = DEFAULT_COMPRESSED_SUBDIR,
        temp_subdir: str = DEFAULT_TEMP_SUBDIR,
        min_compress_size: int = DEFAULT_MIN_COMPRESS_SIZE,
        resync_threshold: int = DEFAULT_RESYNC_THRESHOLD,
        watch: bool = True,
    ) -> None:
        self.option = option
        self.business_option = business_option or RicsBusinessOption()
        self.compressed_dir = os.path.join(option.cache_file_path, compressed_subdir)
        self.temp_dir = os.path.join(option.cache_file_path, temp_subdir)
        self.min_compress_size = min_compress_size
        self.resync_threshold = resync_threshold

        self._sendable: dict[str, str] = {}
        self._sendable_lock = threading.RLock()
        self._compress_lock = threading.Lock()
        self._pending: dict[str, str] = {}
        self._pending_lock = threading.Lock()
        self._call_counter = 0
        self._observer = None

        if watch:
            self._start_watch()
        self.sync_sendable_files()

    def __enter__(self) -> FileRepository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------ watch

    def _start_watch(self) -> None:
        from watchdog.events import FileSystemEventHandler
        from watchdog.observers import Observer

        repository = self

        class _Handler(FileSystemEventHandler):
            def on_closed(self, event):  # noqa: D401 - watchdog hook
                if not event.is_directory:
                    repository.handle_written(os.path.basename(event.src_path))

            def on_deleted(self, event):
                if not event.is_directory:
                    repository.handle_deleted(os.path.basename(event.src_path))

        os.makedirs(self.compressed_dir, exist_ok=True)
        observer = Observer()
        observer.schedule(_Handler(), self.compressed_dir, recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer

    def close(self) -> None:
        """Stop watching the compressed directory."""
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()

    def handle_written(self, filename: str) -> None:
        """Index an archive that has just been written to the compressed directory."""
        if "swp" in filename:
            return
        path = os.path.join(self.compressed_dir, filename)
        md5 = self._calc_md5(path)
        if md5 is not None:
            self.set_compressed_tag(md5, path)
            logger.info("generate compress file :%s", filename)

    def handle_deleted(self, filename: str) -> None:
        """Drop an archive deleted from the compressed directory from the index."""
        if "swp" in filename:
            return
        self.erase_compressed_tag(os.path.join(self.compressed_dir, filename))
        logger.info("delete compress file :%s", filename)

    # ------------------------------------------------------------- archives

    def compress_to_file(self, src_path: str, out_path: str) -> int:
        """Write ``src_path`` bz2-compressed to ``out_path``; return bytes written or -1."""
        with self._compress_lock:
            os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
            try:
                content = Path(src_path).read_bytes()
            except OSError:
                logger.warning("can not open file[%s]!", src_path)
                return -1
            compressed = bz2.compress(content)
            try:
                with open(out_path, "wb") as stream:
                    written = stream.write(compressed)
                    stream.flush()
                    os.fsync(stream.fileno())
            except OSError as exc:
                logger.error("creat compress file failed.(%s)", exc)
                return -1
            logger.info("write to compress file(%d)", written)
            return written

    def _calc_md5(self, path: str) -> str | None:
        if not os.path.exists(path):
            logger.warning("GenerateFileMd5 error ,filepath = %s ,File is not exist!", path)
            return None
        return file_md5(path)

    def has_sendable_file(self) -> bool:
        """Return whether an archive is indexed, rescanning the disk periodically."""
        with self._sendable_lock:
            self._call_counter += 1
            if self._call_counter >= self.resync_threshold:
                logger.warning("HasSendableFile called %d times. Triggering full disk resync...",
                               self.resync_threshold)
                self.sync_sendable_files()
                self._call_counter = 0
            return bool(self._sendable)

    def new_file_name(self, topic: str) -> str:
        """Return an archive name for ``topic`` stamped with the local time."""
        return f"{datetime.now().strftime('%Y%m%dT%H%M%S')}-{topic}.bz2"

    def sendable_files(self) -> list[OfflineDataInfo]:
        """Describe every indexed archive."""
        with self._sendable_lock:
            return [
                OfflineDataInfo(md5=md5, name=os.path.basename(path), size=_file_size(path))
                for md5, path in self._sendable.items()
            ]

    def compressible_files(self) -> list[OfflineDataInfo]:
        """Describe temp files as the archives they would become."""
        files = self._list_files(self.temp_dir)
        if files is None:
            return []
        result = []
        for path in files:
            if path.endswith("0"):
                continue
            md5 = self._calc_md5(path)
            if md5 is None:
                continue
            name = self.new_file_name(os.path.basename(path))
            # archives come out at about 6% of the raw size
            result.append(OfflineDataInfo(md5=md5, name=name, size=_file_size(path) * 6 // 100))
            logger.info("compressfileName=%s", name)
        return result

    def set_compressed_tag(self, md5: str, path: str) -> None:
        """Index ``path`` under ``md5`` unless that digest is already indexed."""
        with self._sendable_lock:
            self._sendable.setdefault(md5, path)

    def compressed_tag(self) -> tuple[str, str]:
        """Return (md5, path) of the next archive to send, or empty strings."""
        with self._sendable_lock:
            for md5, path in self._sendable.items():
                return md5, path
            return "", ""

    def erase_compressed_tag(self, path: str) -> None:
        """Remove the first index entry pointing at ``path``."""
        if not path:
            return
        with self._sendable_lock:
            for md5, indexed in self._sendable.items():
                if indexed == path:
                    del self._sendable[md5]
                    break

    def delete_file(self, path: str) -> str:
        """Delete ``path``; return an empty string or the reason it failed."""
        try:
            os.remove(path)
        except OSError as exc:
            return exc.strerror or str(exc)
        return ""

    def _list_files(self, directory: str) -> list[str] | None:
        if not os.path.exists(directory):
            logger.error("error: GetAllFilesFromSpecDir :Dir(%s) not exist", directory)
            return None
        with os.scandir(directory) as entries:
            return sorted(entry.path for entry in entries if not entry.is_dir())

    def sync_sendable_files(self) -> None:
        """Rebuild the archive index from the compressed directory."""
        with self._sendable_lock:
            self._sendable.clear()
            files = self._list_files(self.compressed_dir)
            if files is None:
                return
            files.sort(key=lambda path: _leading_number(os.path.basename(path)))
            for path in files:
                md5 = self._calc_md5(path)
                if md5 is not None:
                    self.set_compressed_tag(md5, path)
            logger.info("Full resync completed. Loaded %d files.", len(files))

    # ---------------------------------------------------------------- cache

    def sortout_from_cache(self, topic: str, message: str) -> None:
        """Strip message identifiers and append the compact line to ``topic``'s batch."""
        try:
            value = json.loads(message)
        except ValueError:
            value = None
            logger.warning("It's not a complete message :%s", message)
        if isinstance(value, dict):
            for key in ("MsgID", "DeviceCode"):
                if value.get(key) is not None:
                    del value[key]
        elif value is not None:
            logger.warning("It's not a complete message :%s", message)
        line = format_msg(_compact_json(value))
        with self._pending_lock:
            self._pending[topic] = self._pending.get(topic, "") + line

    def _write_temp_files(self) -> list[str]:
        with self._pending_lock:
            pending, self._pending = self._pending, {}
        names = []
        for topic in sorted(pending):
            name = topic[topic.rfind("/") + 1:]
            self._append(os.path.join(self.temp_dir, name), pending[topic])
            names.append(name)
        return names

    def _append(self, path: str, text: str) -> int:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "ab") as stream:
            stream.write(text.encode("utf-8"))
            stream.flush()
            os.fsync(stream.fileno())
            size = stream.tell()
        logger.info("Cache to temp File :%s!", path)
        return size

    def cache_proc(self, compress_filename: str = "") -> None:
        """Flush batched messages to temp files and compress them into archives.

        With ``compress_filename`` the matching temp file is compressed into
        that archive; otherwise every flushed temp file that has reached the
        minimum size gets a new archive.
        """
        if compress_filename and _file_size(os.path.join(self.compressed_dir,
                                                         compress_filename)) > 0:
            return
        names = self._write_temp_files()
        jobs: list[tuple[str, str]] = []
        if not compress_filename:
            for name in names:
                temp_path = os.path.join(self.temp_dir, name)
                if _file_size(temp_path) < self.min_compress_size:
                    continue
                jobs.append((temp_path,
                             os.path.join(self.compressed_dir, self.new_file_name(name))))
        else:
            start = compress_filename.find("-") + 1
            name = compress_filename[start:len(compress_filename) - 4]
            jobs.append((os.path.join(self.temp_dir, name),
                         os.path.join(self.compressed_dir, compress_filename)))
        for temp_path, archive_path in jobs:
            if self.compress_to_file(temp_path, archive_path) > 0:
                self.delete_file(temp_path)
            logger.info("Cache to compress File :%s", archive_path)
        self.free_disk()

    def free_disk(self) -> None:
        """Delete the oldest archive when free disk space falls to the limit."""
        percent = self.disk_free_percent()
        if percent > self.option.disk_free_percent:
            return
        with self._sendable_lock:
            if len(self._sendable) <= 1:
                return
            earliest = next(iter(self._sendable.values()))
        self.delete_file(earliest)
        logger.warning("Percentage of the remaining disk space %d ,delete File= %s",
                       percent, earliest)

    def disk_free_percent(self) -> int:
        """Return the free share of the cache file system in whole percent."""
        stats = os.statvfs(self.option.cache_file_path or ".")
        total = stats.f_blocks * stats.f_frsize
        if total == 0:
            return 0
        return int(stats.f_bfree * stats.f_frsize * 100.0 / total)