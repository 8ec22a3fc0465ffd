import threading

from cubetag import socketio


class SweepScheduler:
    """Periodic AFK sweep and distance flush for one GameAuthority.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Each tick enters an app context so the account store can reach the DB
    - Both loops call into the authority, which serializes them with the
      socket handlers
    """

    def __init__(self, app, authority):
        self.app = app
        self.authority = authority
        self._stopped = threading.Event()
        self._started = False

    def start(self) -> bool:
        app = self.app
        if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
            return False
        if self._started:
            return False
        self._started = True
        afk_every = float(app.config.get('AFK_SWEEP_SEC', 1))
        flush_every = float(app.config.get('STATS_FLUSH_SEC', 3600))
        socketio.start_background_task(self._loop, 'afk', afk_every, self.authority.sweep_idle_holder)
        socketio.start_background_task(self._loop, 'stats', flush_every, self.authority.flush_stats)
        app.logger.info(f"[sweep-start] afk every {afk_every}s, stats flush every {flush_every}s")
        return True

    def stop(self) -> None:
        self._stopped.set()

    def run_once(self, name: str, task) -> None:
        with self.app.app_context():
            try:
                task()
            except Exception:
                self.app.logger.exception(f"[sweep-error] {name} sweep failed")

    def _loop(self, name: str, period: float, task) -> None:
        while not self._stopped.is_set():
            socketio.sleep(period)
            if self._stopped.is_set():
                break
            self.run_once(name, task)
        self.app.logger.info(f"[sweep-stop] {name}")
