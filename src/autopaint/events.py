"""
Notification sinks for autopaint jobs.

A job reports to exactly one sink: human-readable status text, numeric
progress, the motion commands themselves and one terminal signal.
"""


class EventSink:
    """
    Base sink; every notification is ignored.

    Hosts subclass this and override what they care about.
    """

    def status(self, message, replace=False):
        pass

    def progress(self, completed, total=None):
        pass

    def motion(self, command):
        pass

    def complete(self):
        pass

    def canceled(self):
        pass


class RecordingSink(EventSink):
    """Sink that keeps every notification, in order, for later inspection."""

    def __init__(self):
        self.events = []
        self.statuses = []
        self.commands = []
        self.last_progress = None
        self.terminal = []

    def status(self, message, replace=False):
        self.statuses.append(message)
        self.events.append(("status", message, replace))

    def progress(self, completed, total=None):
        if total is None and self.last_progress is not None:
            total = self.last_progress[1]
        self.last_progress = (completed, total)
        self.events.append(("progress", completed, total))

    def motion(self, command):
        self.commands.append(command)
        self.events.append(("motion", command))

    def complete(self):
        self.terminal.append("complete")
        self.events.append(("complete",))

    def canceled(self):
        self.terminal.append("canceled")
        self.events.append(("canceled",))
