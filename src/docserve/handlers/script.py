"""
=============================================================================
SCRIPT RESPONDER
=============================================================================

Runs the external interpreter against a script file and relays whatever it
writes to standard output as the response body.

=============================================================================
PROCESS AS A FUNCTION CALL
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   parent (server)                          child (interpreter)       │
    │   ───────────────                          ───────────────────       │
    │                                                                      │
    │   1. os.pipe() ──► (R, W)                                            │
    │                                                                      │
    │   2. Popen([interpreter, path],  ───────►  stdin  = /dev/null        │
    │            stdout=W)                       stdout = W                │
    │                                            stderr = inherited        │
    │                                                                      │
    │   3. close(W)                              (now the only W holder)   │
    │                                                                      │
    │   4. "200 OK" head ──► client                                        │
    │                                                                      │
    │   5. os.read(R) ◄──────────────────────────  print(...)              │
    │         │                                                            │
    │         └──► client            ... until EOF (child closed W)        │
    │                                                                      │
    │   6. close(R); wait() ◄─────────────────── exit(status)              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Step 3 matters: as long as the parent holds its own copy of W, reading R
never reports EOF, because a pipe only reaches end-of-stream once every
write end is closed.

Step 6 always runs, on every path that got past step 2. Skipping wait()
leaves a zombie; skipping close(R) leaks a descriptor per request.

=============================================================================
FAILURE MODES
=============================================================================

    pipe() fails (EMFILE ...)        → 500, nothing spawned
    Popen() fails (ENOENT, EACCES)   → R and W closed, 500
    interpreter exits non-zero       → still 200, logged as a warning
    interpreter prints nothing       → 200 with an empty body
    client disconnects mid-relay     → R closed, child reaped
    read(R) fails                    → body truncated, child reaped

The head is sent BEFORE the first byte of output is known. A script that
crashes immediately therefore produces "200 OK" with an empty body, and
its exit status only reaches the log.

=============================================================================
TIMEOUTS
=============================================================================

By default there is none: a script that never exits keeps the (single)
connection slot busy forever. Setting ServerConfig.script_timeout arms a
timer that kills the child when it fires. Killing the child closes its
stdout, the relay loop sees EOF, and teardown proceeds as usual.

=============================================================================
"""

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..http.mime_types import SCRIPT_OUTPUT_TYPE
from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class SubprocessSession:
    """
    One run of the interpreter: child process + read end of its stdout.

    =========================================================================
    LIFECYCLE
    =========================================================================

        session = SubprocessSession("/usr/bin/php", "www/info.php")
        session.start()              # pipe + spawn, raises OSError
        with session:                # close() on exit, always
            for chunk in session.read_chunks(4096):
                ...
        session.returncode           # exit status, negative = signal

    =========================================================================
    """

    def __init__(
        self,
        interpreter: str,
        script_path: Union[str, Path],
        timeout: Optional[float] = None,
    ):
        self.interpreter = interpreter
        self.script_path = script_path
        self.timeout = timeout

        self.process: Optional[subprocess.Popen] = None
        self.returncode: Optional[int] = None
        self.timed_out = False

        self._read_fd: Optional[int] = None
        self._timer: Optional[threading.Timer] = None

    @property
    def args(self) -> List[str]:
        """Command line: the interpreter and the script path, nothing else."""
        return [self.interpreter, str(self.script_path)]

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def start(self) -> None:
        """
        Create the pipe and spawn the interpreter.

        Raises:
            OSError: pipe creation or spawn failed. No descriptor is left
                     open and no child is left running.
        """
        # 1. Setup
        read_fd, write_fd = os.pipe()

        try:
            # 2. Spawn, child stdout = write end
            self.process = subprocess.Popen(
                self.args,
                stdin=subprocess.DEVNULL,
                stdout=write_fd,
                close_fds=True,
            )
        except BaseException:
            os.close(read_fd)
            raise
        finally:
            # 3. Parent keeps only the read end
            os.close(write_fd)

        self._read_fd = read_fd
        logger.debug(f"Spawned pid {self.process.pid}: {' '.join(self.args)}")

        if self.timeout is not None:
            self._timer = threading.Timer(self.timeout, self._expire)
            self._timer.daemon = True
            self._timer.start()

    def read_chunks(self, chunk_size: int) -> Iterator[bytes]:
        """
        Yield interpreter output as it arrives, until EOF or a read error.
        """
        if self._read_fd is None:
            return

        while True:
            try:
                chunk = os.read(self._read_fd, chunk_size)
            except OSError as e:
                logger.warning(f"Read from pid {self.pid} failed: {e}")
                return

            if not chunk:
                return  # EOF: every write end is closed

            yield chunk

    def close(self) -> Optional[int]:
        """
        Close the read end and reap the child.

        Safe to call more than once. Returns the exit status.
        """
        if self._read_fd is not None:
            os.close(self._read_fd)
            self._read_fd = None

        if self.process is not None and self.returncode is None:
            # The timer (if any) stays armed while we wait
            self.returncode = self.process.wait()

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        return self.returncode

    def _expire(self) -> None:
        if self.process is None or self.process.poll() is not None:
            return
        self.timed_out = True
        logger.warning(
            f"Script {self.script_path} exceeded {self.timeout}s, killing pid {self.process.pid}"
        )
        self.process.kill()

    def __enter__(self) -> "SubprocessSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class ScriptResponder:
    """
    Relays interpreter output to the client.

    Usage:
        scripts = ScriptResponder("/usr/bin/php", chunk_size=4096)
        scripts.respond(writer, Path("/srv/www/info.php"))
    """

    def __init__(
        self,
        interpreter: str,
        chunk_size: int = 4096,
        timeout: Optional[float] = None,
        output_type: str = SCRIPT_OUTPUT_TYPE,
    ):
        self.interpreter = interpreter
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.output_type = output_type

    @classmethod
    def from_config(cls, config) -> "ScriptResponder":
        return cls(
            interpreter=config.interpreter,
            chunk_size=config.buffer_size,
            timeout=config.script_timeout,
        )

    def respond(self, writer: ResponseWriter, path: Path) -> None:
        """Run the interpreter on `path` and stream its stdout."""
        logger.info(f"Executing script: {path}")

        session = SubprocessSession(self.interpreter, path, timeout=self.timeout)
        try:
            session.start()
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to launch {self.interpreter} for {path}: {e}")
            writer.send_server_error()
            return

        with session:
            # 4. Head goes out before any output is known
            if writer.start(HTTPStatus.OK, self.output_type):
                self._relay(writer, session)

        self._report(session)

    def _relay(self, writer: ResponseWriter, session: SubprocessSession) -> None:
        # 5. Relay loop
        for chunk in session.read_chunks(self.chunk_size):
            if not writer.write(chunk):
                logger.debug(f"Client went away, abandoning output of pid {session.pid}")
                return

    def _report(self, session: SubprocessSession) -> None:
        status = session.returncode
        if session.timed_out:
            logger.warning(f"Script {session.script_path} was killed after {self.timeout}s")
        elif status is not None and status > 0:
            logger.warning(f"Script {session.script_path} exited with status {status}")
        elif status is not None and status < 0:
            logger.warning(f"Script {session.script_path} killed by signal {-status}")
