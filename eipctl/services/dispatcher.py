"""Background execution of association operations.

Associate and dissociate block for up to the polling timeout. The dispatcher
runs them on a thread pool and hands back futures, serializing operations
that target the same EIP.
"""

import contextvars
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Deque, Dict, Optional, Tuple, TYPE_CHECKING

from eipctl.config import settings
from eipctl.services.association import AssociationController
from eipctl.utils.logger import get_logger

if TYPE_CHECKING:
    from eipctl.models.eip import EipAddress

logger = get_logger(__name__)

# (operation name, caller context, work, caller-facing future)
Job = Tuple[str, contextvars.Context, Callable[[], object], Future]


class AssociationDispatcher:
    """Thread pool running association operations with one writer per EIP.

    Only the head operation of each EIP occupies a worker. Later operations
    on the same EIP wait in ``_pending`` and are handed to the pool when the
    previous one finishes, so a busy EIP never starves the others.
    """

    def __init__(
        self,
        controller: AssociationController,
        max_workers: Optional[int] = None,
    ):
        self.controller = controller
        self.max_workers = max_workers or settings.ASSOCIATION_WORKERS
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="eip-association"
        )
        # EIP id -> operations queued behind the running one
        self._pending: Dict[str, Deque[Job]] = {}
        self._guard = threading.Condition()
        self._closed = False

    def _submit(self, eip: "EipAddress", operation: str, fn: Callable[[], object]) -> Future:
        future: Future = Future()
        # Run in a copy of the caller's context so log records keep its request_id
        job = (operation, contextvars.copy_context(), fn, future)

        with self._guard:
            if self._closed:
                raise RuntimeError("cannot submit association after shutdown")
            queue = self._pending.get(eip.id)
            if queue is not None:
                queue.append(job)
                logger.debug(
                    "Association operation queued",
                    extra={"eip_id": eip.id, "operation": operation, "queued": len(queue)},
                )
                return future
            self._pending[eip.id] = deque()

        self._start(eip.id, job)
        return future

    def _start(self, eip_id: str, job: Job) -> None:
        operation, ctx, fn, future = job
        if not future.set_running_or_notify_cancel():
            self._advance(eip_id)
            return

        logger.debug(
            "Running association operation",
            extra={"eip_id": eip_id, "operation": operation},
        )
        try:
            work = self._executor.submit(ctx.run, fn)
        except RuntimeError as e:
            # Pool shut down without waiting while this operation was queued
            future.set_exception(e)
            self._advance(eip_id)
            return
        work.add_done_callback(lambda done: self._finish(eip_id, future, done))

    def _finish(self, eip_id: str, future: Future, done: Future) -> None:
        error = done.exception()
        if error is None:
            future.set_result(done.result())
        else:
            future.set_exception(error)
        self._advance(eip_id)

    def _advance(self, eip_id: str) -> None:
        """Start the next operation queued for ``eip_id``, if any."""
        with self._guard:
            queue = self._pending[eip_id]
            if not queue:
                del self._pending[eip_id]
                if not self._pending:
                    self._guard.notify_all()
                return
            job = queue.popleft()

        self._start(eip_id, job)

    def submit_associate(self, eip: "EipAddress", instance_id: str) -> Future:
        """Queue ``associate``; the future resolves to the EIP or its error."""
        return self._submit(
            eip, "associate", lambda: self.controller.associate(eip, instance_id)
        )

    def submit_dissociate(
        self, eip: "EipAddress", instance_id: Optional[str] = None
    ) -> Future:
        """Queue ``dissociate``; the future resolves to the EIP or its error."""
        return self._submit(
            eip, "dissociate", lambda: self.controller.dissociate(eip, instance_id)
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with ``wait``, drain every queued operation first."""
        with self._guard:
            self._closed = True
            if wait:
                self._guard.wait_for(lambda: not self._pending)
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AssociationDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
