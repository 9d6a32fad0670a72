# apps/mobile/alerts.py
import logging

logger = logging.getLogger(__name__)

# Milliseconds: wait, vibrate, wait
ALARM_VIBRATION_PATTERN = (500, 500, 500)


class AlertPresenter:
    """
    Platform seam for everything the user sees or feels: vibration, system
    notifications, modals, toasts and plain alerts.
    """

    def vibrate(self, pattern, repeat=False):
        raise NotImplementedError

    def cancel_vibration(self):
        raise NotImplementedError

    def notify(self, title, body, data=None):
        raise NotImplementedError

    def show_modal(self, title, message, on_dismiss=None):
        raise NotImplementedError

    def show_toast(self, message):
        raise NotImplementedError

    def show_alert(self, title, message):
        raise NotImplementedError


class LoggingAlertPresenter(AlertPresenter):
    """Headless presenter that only logs. Used by the ``run_device`` management command."""

    def __init__(self):
        self.vibrating = False

    def vibrate(self, pattern, repeat=False):
        self.vibrating = repeat
        logger.info(f"Vibrate {list(pattern)} (repeat={repeat})")

    def cancel_vibration(self):
        self.vibrating = False
        logger.info("Vibration cancelled")

    def notify(self, title, body, data=None):
        logger.info(f"Notification: {title}: {body}")

    def show_modal(self, title, message, on_dismiss=None):
        logger.info(f"Modal: {title}: {message}")

    def show_toast(self, message):
        logger.info(f"Toast: {message}")

    def show_alert(self, title, message):
        logger.warning(f"Alert: {title}: {message}")
