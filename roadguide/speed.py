"""Speed limit warning evaluation."""


class SpeedMonitor:
    """Raises or clears the speed warning from a single speed sample"""

    @staticmethod
    def evaluate(current_speed: float, threshold: float, warning_active: bool) -> bool:
        """Return the new warning state.

        `warning_active` is the previous state; callers compare the two to
        detect the false -> true edge.
        """
        return current_speed > threshold
