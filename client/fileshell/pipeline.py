"""Streaming pipeline engine for fileshell.

A pipeline reads a source file chunk by chunk, passes every chunk
through at most one transform stage, and writes the result to a sink
(a file path or an already open binary stream).  File handles belong to
the pipeline for its lifetime and are closed on both success and
failure.  When the sink is a file that the pipeline created and the run
fails, the partial file is removed.

PipelineRunner wraps handler calls in concurrent.futures.Future objects
so the shell gets one completion signal per command, whether the
command ran inline or on a worker thread.
"""

import concurrent.futures
import hashlib
import logging
import os
import threading
import zlib
from typing import Callable, Optional

from . import CodecError, error_from_os


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_LEVEL = 6

# zlib wbits selecting the gzip container on both ends.
GZIP_WBITS = 16 + zlib.MAX_WBITS


# ---------------------------------------------------------------------------
# Transform stages
# ---------------------------------------------------------------------------

class Identity:
    """Pass bytes through unchanged."""

    name = "identity"

    def update(self, chunk):
        return chunk

    def finish(self):
        return b""


class Digest:
    """Accumulate a cryptographic digest; emits no bytes.

    The hex digest is available from ``hexdigest()`` once the source is
    exhausted.
    """

    name = "digest"

    def __init__(self, algorithm="sha256"):
        self._hash = hashlib.new(algorithm)

    def update(self, chunk):
        self._hash.update(chunk)
        return b""

    def finish(self):
        return b""

    def hexdigest(self):
        return self._hash.hexdigest()


class Compress:
    """Forward codec stage: gzip-framed zlib deflate."""

    name = "compress"

    def __init__(self, level=DEFAULT_LEVEL):
        self._obj = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)

    def update(self, chunk):
        return self._obj.compress(chunk)

    def finish(self):
        return self._obj.flush()


class Decompress:
    """Inverse codec stage for Compress.

    Raises CodecError on corrupt input, on input that ends before the
    stream trailer, and on trailing bytes after the trailer.
    """

    name = "decompress"

    def __init__(self):
        self._obj = zlib.decompressobj(GZIP_WBITS)

    def update(self, chunk):
        if self._obj.eof:
            if chunk:
                raise CodecError("unexpected data after end of stream")
            return b""
        try:
            return self._obj.decompress(chunk)
        except zlib.error as e:
            raise CodecError(str(e))

    def finish(self):
        if not self._obj.eof:
            raise CodecError("compressed stream is truncated")
        if self._obj.unused_data:
            raise CodecError("unexpected data after end of stream")
        return self._obj.flush()


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class PipelineResult:
    """Outcome of a completed pipeline run.

    Attributes:
        bytes_read: Bytes consumed from the source.
        bytes_written: Bytes delivered to the sink.
        digest: Hex digest when the transform was a Digest, else None.
    """

    def __init__(self, bytes_read, bytes_written, digest=None):
        self.bytes_read = bytes_read
        self.bytes_written = bytes_written
        self.digest = digest

    def __repr__(self):
        return "PipelineResult(read={}, written={}, digest={!r})".format(
            self.bytes_read, self.bytes_written, self.digest)


class Pipeline:
    """A source -> transform -> sink chain, run once to completion.

    source      Path of the file to read.
    sink        Path of the file to write, an open binary stream, or
                None to discard output (used with Digest).
    transform   One of the stage objects above; default Identity.
    chunk_size  Read size in bytes.

    The source is opened before the sink, so a missing source never
    creates or truncates the destination.
    """

    def __init__(self, source, sink=None, transform=None,
                 chunk_size=DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.source = source
        self.sink = sink
        self.transform = transform if transform is not None else Identity()
        self.chunk_size = chunk_size

    def _sink_is_path(self):
        return isinstance(self.sink, (str, bytes, os.PathLike))

    def run(self) -> PipelineResult:
        """Stream the source through the transform into the sink.

        Returns a PipelineResult once every byte has been written and
        the sink has been flushed (and closed, for file sinks).  Raises
        an OperationFailedError subclass on any failure.
        """
        logger.debug("pipeline %s: %s -> %s", self.transform.name,
                     self.source, self.sink)
        try:
            src = open(self.source, "rb")
        except OSError as e:
            raise error_from_os(e)

        created = None
        out = None
        finished = False
        try:
            if self._sink_is_path():
                out = open(self.sink, "wb")
                created = self.sink
            else:
                out = self.sink
            read_total, written_total = self._pump(src, out)
            if created is not None:
                out.close()
            elif out is not None:
                out.flush()
            finished = True
        except OSError as e:
            raise error_from_os(e)
        finally:
            src.close()
            # Any exit short of completion, Ctrl-C included, drops the
            # partial destination.
            if not finished:
                self._abort(out, created)

        digest = None
        if isinstance(self.transform, Digest):
            digest = self.transform.hexdigest()
        logger.debug("pipeline %s done: read %d, wrote %d",
                     self.transform.name, read_total, written_total)
        return PipelineResult(read_total, written_total, digest)

    def _pump(self, src, out):
        read_total = 0
        written_total = 0
        while True:
            chunk = src.read(self.chunk_size)
            if not chunk:
                break
            read_total += len(chunk)
            data = self.transform.update(chunk)
            if data and out is not None:
                out.write(data)
                written_total += len(data)
        tail = self.transform.finish()
        if tail and out is not None:
            out.write(tail)
            written_total += len(tail)
        return read_total, written_total

    def _abort(self, out, created):
        """Release the sink after a failure, removing a partial file."""
        if created is None:
            return
        try:
            out.close()
        except OSError:
            logger.debug("closing partial sink %s failed", created)
        try:
            os.unlink(created)
        except OSError as e:
            logger.debug("removing partial sink %s failed: %s", created, e)


def copy_file(source, dest, chunk_size=DEFAULT_CHUNK_SIZE):
    """Stream source into dest unchanged."""
    return Pipeline(source, dest, Identity(), chunk_size).run()


def hash_file(source, algorithm="sha256", chunk_size=DEFAULT_CHUNK_SIZE):
    """Return the hex digest of source, streamed."""
    return Pipeline(source, None, Digest(algorithm), chunk_size).run().digest


def compress_file(source, dest, level=DEFAULT_LEVEL,
                  chunk_size=DEFAULT_CHUNK_SIZE):
    """Write the gzip-compressed form of source to dest."""
    return Pipeline(source, dest, Compress(level), chunk_size).run()


def decompress_file(source, dest, chunk_size=DEFAULT_CHUNK_SIZE):
    """Inverse of compress_file."""
    return Pipeline(source, dest, Decompress(), chunk_size).run()


def stream_file(source, stream, chunk_size=DEFAULT_CHUNK_SIZE):
    """Copy source to an already open binary stream."""
    return Pipeline(source, stream, Identity(), chunk_size).run()


# ---------------------------------------------------------------------------
# Completion signalling
# ---------------------------------------------------------------------------

class PipelineRunner:
    """Run command work and hand back a Future per command.

    In foreground mode (the default) work runs inline and the returned
    Future is already resolved, so commands are strictly serialized.  In
    background mode work is submitted to a thread pool; at most
    ``max_jobs`` jobs may be in flight and ``submit`` blocks the caller
    until a slot frees up.
    """

    def __init__(self, background=False, max_jobs=4):
        if max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")
        self.background = background
        self.max_jobs = max_jobs
        self._executor = None
        self._slots = threading.BoundedSemaphore(max_jobs)
        self._lock = threading.Lock()
        self._pending = set()

    def submit(self, func: Callable, *args,
               background: Optional[bool] = None) -> concurrent.futures.Future:
        """Run func(*args), returning a Future for its result.

        background overrides the runner's mode for this call; pass False
        for work that must finish before the next prompt.
        """
        if background is None:
            background = self.background
        if not background:
            future = concurrent.futures.Future()
            try:
                future.set_result(func(*args))
            except Exception as e:
                future.set_exception(e)
            return future

        self._slots.acquire()
        with self._lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.max_jobs,
                    thread_name_prefix="fileshell-job")
            future = self._executor.submit(func, *args)
            self._pending.add(future)
        future.add_done_callback(self._release)
        return future

    def _release(self, future):
        with self._lock:
            self._pending.discard(future)
        self._slots.release()

    def in_flight(self):
        """Number of background jobs not yet finished."""
        with self._lock:
            return len(self._pending)

    def wait(self, timeout=None):
        """Block until every background job has finished."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            concurrent.futures.wait(pending, timeout=timeout)

    def shutdown(self):
        """Wait for in-flight jobs, then stop the worker threads."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
