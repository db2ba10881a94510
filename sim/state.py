class SimulationState:
    """Running/stopped flag for the interactive loop.

    Listeners are called with the new value, and only when it actually changes.
    """

    def __init__(self):
        self._running = False
        self._callbacks = []

    @property
    def running(self):
        return self._running

    def start(self):
        if self._running:
            return
        self._running = True
        self._notify()

    def stop(self):
        if not self._running:
            return
        self._running = False
        self._notify()

    def toggle(self):
        if self._running:
            self.stop()
        else:
            self.start()

    def on_change(self, callback):
        self._callbacks.append(callback)

    def _notify(self):
        for callback in self._callbacks:
            callback(self._running)
