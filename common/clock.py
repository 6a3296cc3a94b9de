from django.utils import timezone


class SystemClock:
    """
    Wall clock of the clinic.
    now() is timezone aware, today() is the local calendar date.
    """
    def now(self):
        return timezone.now()

    def today(self):
        return timezone.localdate(self.now())


class FixedClock(SystemClock):
    """Clock frozen at a given moment, used by tests and data seeding."""
    def __init__(self, now):
        if timezone.is_naive(now):
            now = timezone.make_aware(now)
        self._now = now

    def now(self):
        return self._now

    def advance(self, delta):
        self._now = self._now + delta


def get_clock(clock=None):
    return clock or SystemClock()
