import random
import time


class Pacer:
    """Blocking waits for the scrape flow, with randomized human-like delays

    All sleeps go through here so tests can pass a zero-delay config or a fake
    `sleep`.
    """

    def __init__(self, config, sleep=time.sleep, rng=None):
        self.config = config
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.total_slept = 0.0

    def pause(self, seconds):
        if seconds and seconds > 0:
            self._sleep(seconds)
            self.total_slept += seconds
        return seconds

    def human_delay(self, bounds):
        """Sleep a random duration within (min, max); the midpoint when randomization is off"""
        low, high = bounds
        if self.config.get("randomize_delays", True):
            delay = self._rng.uniform(low, high)
        else:
            delay = (low + high) / 2
        return self.pause(delay)

    def typing_delay(self):
        return self.human_delay(self.config["typing_delay_bounds"])

    def listing_delay(self):
        return self.human_delay(self.config["listing_delay_bounds"])

    def scroll_backoff(self, attempt):
        """Longer waits deeper in the feed, where results load slower"""
        return self.pause(self.config["scroll_base_delay"] + self.config["scroll_delay_increment"] * attempt)
