"""Notifications: in-app alerts, e-mail queue, reminders and audit trail."""
