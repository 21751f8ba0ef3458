import queue
import threading

from ..config import logger


class WorkerPool:
    """
    Fixed set of worker threads draining a bounded job queue.

    put() blocks while the queue is full, which throttles whoever is
    generating jobs. Workers only ever put onto unbounded queues.
    """

    def __init__(self, state, executor, size=None):
        self.state = state
        self.executor = executor
        self.size = size or state.config.threads
        self.jobs = queue.Queue(maxsize=state.config.max_queue)
        self._threads = []

    def start(self):
        if self._threads:
            return
        for i in range(self.size):
            thread = threading.Thread(target=self._worker, name=f"recursebuster-worker-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logger.debug(f" [.] Started {self.size} worker thread(s)")

    def put(self, job):
        self.jobs.put(job)

    def _worker(self):
        while True:
            job = self.jobs.get()
            try:
                if job is None:
                    break
                self.executor.execute(job)
            except Exception as e:
                # execute() has already released the job
                logger.error(f" [!] Worker error on {job.url}: {type(e).__name__} - {e}")
            finally:
                self.jobs.task_done()

    def stop(self, timeout=None):
        for _ in self._threads:
            self.jobs.put(None)
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
