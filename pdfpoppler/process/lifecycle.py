"""
Process lifecycle management for spawned Poppler tools.

This module provides:
- Spawning with a fresh process group (POSIX) so launchers and their
  children terminate together
- Background stdin feeding from bytes or a binary stream
- Background stderr draining for diagnostics
- Streaming stdout as a lazy, finite, non-restartable chunk iterator
- Buffered runs built on the same stream
- Exactly-once release on the first of drain, consumer stop, error, timeout
"""

from __future__ import annotations

import io
import logging
import os
import signal
import subprocess
import threading
import weakref
from pathlib import Path
from typing import BinaryIO, Iterator, Mapping, Optional, Sequence, Union

from pdfpoppler.common.errors import (
    ExecutableNotFoundError,
    OutputLimitExceededError,
    ProcessTimeoutError,
)
from pdfpoppler.common.settings import settings
from pdfpoppler.common.types import ExecutionOptions
from pdfpoppler.process.classifier import classify

logger = logging.getLogger(__name__)

IS_POSIX = os.name == "posix"

InputData = Union[bytes, bytearray, memoryview, BinaryIO, None]


class ManagedProcess:
    """One spawned process, its three channels and a single-shot release

    Owned exclusively by the call that created it. release() may be
    triggered from the consumer thread or the timeout timer; only the first
    call does any work.
    """

    def __init__(self, process: subprocess.Popen, argv: Sequence[str], encoding: str) -> None:
        """
        Wrap a started process

        Args:
            process: Popen created with three unbuffered pipes
            argv: Command line, for messages
            encoding: Encoding used to decode diagnostics
        """
        self.process: subprocess.Popen = process
        self.argv: list[str] = list(argv)
        self.release_reason: Optional[str] = None
        self._encoding: str = encoding
        self._lock: threading.RLock = threading.RLock()
        self._released: bool = False
        self._disconnected: threading.Event = threading.Event()
        self._stderr_chunks: list[bytes] = []
        self._feeder: Optional[threading.Thread] = None
        self._drainer: Optional[threading.Thread] = None
        self._timer: Optional[threading.Timer] = None

    # =========================================================================
    # Start-up
    # =========================================================================

    def input_start(self, input_data: InputData) -> None:
        """
        Start feeding stdin, or close it at once when there is no input

        Args:
            input_data: Bytes-like data, a binary stream, or None

        Raises:
            TypeError: If input_data is of another type
        """
        if input_data is None:
            self._channel_close(self.process.stdin)
            return
        if isinstance(input_data, (bytes, bytearray, memoryview)):
            target = self._bytes_feed
        elif isinstance(input_data, io.IOBase):
            target = self._stream_feed
        else:
            self._channel_close(self.process.stdin)
            raise TypeError(
                f"Unsupported process input {type(input_data).__name__}; "
                "expected bytes or a binary stream"
            )
        self._feeder = threading.Thread(
            target=target, args=(input_data,), name="pdfpoppler-stdin", daemon=True
        )
        self._feeder.start()

    def diagnostics_start(self) -> None:
        """Start draining stderr in the background"""
        self._drainer = threading.Thread(
            target=self._diagnostics_drain, name="pdfpoppler-stderr", daemon=True
        )
        self._drainer.start()

    def timeout_start(self, timeout_s: float) -> None:
        """Arm a timer that releases the process after timeout_s seconds"""
        self._timer = threading.Timer(timeout_s, self._timeout_expire)
        self._timer.daemon = True
        self._timer.start()

    # =========================================================================
    # State
    # =========================================================================

    def released_check(self) -> bool:
        return self._released

    def timedOut_check(self) -> bool:
        return self.release_reason == "timeout"

    def name_get(self) -> str:
        """Short name of the spawned command"""
        return Path(self.argv[0]).name if self.argv else "process"

    # =========================================================================
    # I/O
    # =========================================================================

    def chunk_read(self, size: int) -> bytes:
        """
        Read up to size bytes of stdout

        Returns:
            Available bytes; b"" at end of output
        """
        stdout = self.process.stdout
        if stdout is None:
            return b""
        return stdout.read(size) or b""

    def exit_wait(self) -> int:
        """Block until the process exits and return its status"""
        return self.process.wait()

    def diagnostics_get(self) -> str:
        """
        Decoded stderr collected so far

        Waits (bounded) for the drain thread, so call after the process exited.
        """
        if self._drainer is not None and self._drainer is not threading.current_thread():
            self._drainer.join(settings.THREAD_JOIN_SEC)
        return b"".join(self._stderr_chunks).decode(self._encoding, errors="replace")

    # =========================================================================
    # Release
    # =========================================================================

    def release(self, reason: str) -> bool:
        """
        Release every resource of this process, once

        Disconnects the stdin feeder, terminates the process (group) if it
        is still running, and closes all three channels.

        Args:
            reason: Trigger name, kept in release_reason

        Returns:
            True for the call that performed the release, False afterwards
        """
        with self._lock:
            if self._released:
                logger.debug(f"{self.name_get()} already released ({self.release_reason}), ignoring {reason}")
                return False
            self.release_reason = reason
            self._released = True

            self._disconnected.set()
            if self._timer is not None and self._timer is not threading.current_thread():
                self._timer.cancel()

            self._process_terminate()
            for thread in (self._feeder, self._drainer):
                if thread is not None and thread is not threading.current_thread():
                    thread.join(settings.THREAD_JOIN_SEC)
            self._channels_close()

        logger.debug(
            f"Released {self.name_get()} (pid {self.process.pid}, reason {reason}, "
            f"exit {self.process.returncode})"
        )
        return True

    def _timeout_expire(self) -> None:
        if self.release("timeout"):
            logger.warning(f"{self.name_get()} timed out and was terminated")

    def _process_terminate(self) -> None:
        if self.process.poll() is not None:
            return
        self._signal_send(kill=False)
        try:
            self.process.wait(timeout=settings.TERMINATE_GRACE_SEC)
        except subprocess.TimeoutExpired:
            logger.debug(f"{self.name_get()} ignored SIGTERM, killing")
            self._signal_send(kill=True)
            self.process.wait()

    def _signal_send(self, kill: bool) -> None:
        try:
            if IS_POSIX:
                # start_new_session makes the process group id equal to the pid
                os.killpg(self.process.pid, signal.SIGKILL if kill else signal.SIGTERM)
            elif kill:
                self.process.kill()
            else:
                self.process.terminate()
        except (ProcessLookupError, PermissionError) as e:
            logger.debug(f"Signalling {self.name_get()} skipped: {e}")

    def _channels_close(self) -> None:
        for channel in (self.process.stdin, self.process.stdout, self.process.stderr):
            self._channel_close(channel)

    @staticmethod
    def _channel_close(channel: Optional[BinaryIO]) -> None:
        if channel is None or channel.closed:
            return
        try:
            channel.close()
        except OSError as e:
            logger.debug(f"Closing channel failed: {e}")

    # =========================================================================
    # Helper threads
    # =========================================================================

    def _bytes_feed(self, data: Union[bytes, bytearray, memoryview]) -> None:
        view = memoryview(data)
        try:
            while view and not self._disconnected.is_set():
                view = view[self._chunk_write(view[: settings.READ_CHUNK_SIZE]):]
        except (OSError, ValueError) as e:
            logger.debug(f"stdin of {self.name_get()} closed early: {e}")
        finally:
            self._channel_close(self.process.stdin)

    def _stream_feed(self, source: BinaryIO) -> None:
        try:
            while not self._disconnected.is_set():
                chunk = source.read(settings.READ_CHUNK_SIZE)
                if not chunk:
                    break
                view = memoryview(chunk)
                while view and not self._disconnected.is_set():
                    view = view[self._chunk_write(view):]
        except (OSError, ValueError) as e:
            logger.debug(f"stdin of {self.name_get()} closed early: {e}")
        finally:
            self._channel_close(self.process.stdin)

    def _chunk_write(self, chunk: memoryview) -> int:
        stdin = self.process.stdin
        if stdin is None:
            raise ValueError("stdin is not a pipe")
        # Unbuffered pipes may accept only part of a chunk
        written = stdin.write(chunk)
        return written or 0

    def _diagnostics_drain(self) -> None:
        stderr = self.process.stderr
        if stderr is None:
            return
        try:
            while True:
                chunk = stderr.read(settings.READ_CHUNK_SIZE)
                if not chunk:
                    break
                self._stderr_chunks.append(chunk)
        except (OSError, ValueError) as e:
            logger.debug(f"stderr of {self.name_get()} closed early: {e}")


class ProcessStream:
    """Lazily produced stdout of one managed process

    Iterates over bytes chunks in emission order. Finite and
    non-restartable: once finished, iteration stops. Use as a context
    manager (or call close()) to stop early; stopping releases the process
    through the same path as completion.
    """

    def __init__(
        self,
        managed: ManagedProcess,
        timeout_s: Optional[float] = None,
        chunk_size: int = settings.READ_CHUNK_SIZE,
    ) -> None:
        self._managed: ManagedProcess = managed
        self._timeout_s: Optional[float] = timeout_s
        self._chunk_size: int = chunk_size
        self._finished: bool = False
        # Streams dropped without close() still release their process
        self._finalizer: weakref.finalize = weakref.finalize(self, managed.release, "abandoned")

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        if self._finished:
            raise StopIteration
        managed = self._managed

        if managed.released_check():
            self._finished = True
            self._timeout_raise()
            raise StopIteration

        try:
            chunk = managed.chunk_read(self._chunk_size)
        except (OSError, ValueError) as e:
            self._finished = True
            self._timeout_raise()
            if managed.released_check():
                raise StopIteration
            diagnostics = managed.diagnostics_get()
            managed.release("error")
            raise classify(e, diagnostics) from e

        if chunk:
            return chunk
        return self._completion_handle()

    def _completion_handle(self) -> bytes:
        self._finished = True
        managed = self._managed
        exit_code = managed.exit_wait()
        diagnostics = managed.diagnostics_get()
        managed.release("drained")
        self._timeout_raise(diagnostics)

        if exit_code != 0:
            raise classify(
                f"{managed.name_get()} exited with code {exit_code}", diagnostics, exit_code
            )
        raise StopIteration

    def _timeout_raise(self, diagnostics: str = "") -> None:
        if self._managed.timedOut_check():
            raise ProcessTimeoutError(self._timeout_s or 0.0, diagnostics)

    def close(self) -> bool:
        """
        Stop consuming and release the process

        Returns:
            True if this call performed the release
        """
        self._finished = True
        return self._managed.release("consumer-stop")

    def process_get(self) -> ManagedProcess:
        return self._managed

    def diagnostics_get(self) -> str:
        return self._managed.diagnostics_get()

    def __enter__(self) -> "ProcessStream":
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class ProcessLifecycleManager:
    """Spawns commands and supervises them in buffered or streaming mode"""

    def __init__(self, options: ExecutionOptions, chunk_size: int = settings.READ_CHUNK_SIZE) -> None:
        """
        Initialize manager

        Args:
            options: Execution options (encoding, output limit, timeout)
            chunk_size: Upper bound for one stdout chunk
        """
        self._options: ExecutionOptions = options
        self._chunk_size: int = chunk_size

    def process_spawn(
        self,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str],
        input_data: InputData = None,
    ) -> ManagedProcess:
        """
        Spawn a command with three pipes and start its helper threads

        Args:
            command: Executable
            args: Arguments
            env: Complete environment
            input_data: stdin contents

        Returns:
            Started ManagedProcess

        Raises:
            ExecutableNotFoundError: If the executable is missing or not executable
            ProcessError: For other spawn failures (classified)
        """
        argv = [command, *args]
        popen_kwargs: dict = {
            "stdin": subprocess.PIPE,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.PIPE,
            "env": dict(env),
            "bufsize": 0,
            "shell": False,
        }
        if IS_POSIX:
            popen_kwargs["start_new_session"] = True

        logger.debug(f"Spawning {command} with {len(args)} argument(s)")
        try:
            process = subprocess.Popen(argv, **popen_kwargs)
        except FileNotFoundError as e:
            raise ExecutableNotFoundError(command) from e
        except PermissionError as e:
            raise ExecutableNotFoundError(command, f"Poppler binary not executable: {command}") from e
        except OSError as e:
            raise classify(e, "") from e

        managed = ManagedProcess(process, argv, self._options.encoding)
        managed.diagnostics_start()
        try:
            managed.input_start(input_data)
        except TypeError:
            managed.release("error")
            raise
        if self._options.timeout_s is not None:
            managed.timeout_start(self._options.timeout_s)
        return managed

    def streaming_run(
        self,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str],
        input_data: InputData = None,
    ) -> ProcessStream:
        """
        Run a command and expose stdout as a ProcessStream

        Returns:
            Stream of stdout chunks; errors surface while iterating
        """
        managed = self.process_spawn(command, args, env, input_data)
        return ProcessStream(managed, self._options.timeout_s, self._chunk_size)

    def buffered_run(
        self,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str],
        input_data: InputData = None,
    ) -> bytes:
        """
        Run a command to completion and return all of stdout

        Returns:
            Concatenated stdout of a zero exit status

        Raises:
            OutputLimitExceededError: If stdout grows past max_output_bytes
            ProcessTimeoutError: If the timeout expires
            ProcessError: Classified failure for a non-zero exit status
        """
        limit = self._options.max_output_bytes
        chunks: list[bytes] = []
        total = 0
        with self.streaming_run(command, args, env, input_data) as stream:
            for chunk in stream:
                total += len(chunk)
                if total > limit:
                    stream.close()
                    raise OutputLimitExceededError(limit, stream.diagnostics_get())
                chunks.append(chunk)
        return b"".join(chunks)
