"""
Supplier Onboarding Portal
Notification Service.

Central service for queuing and querying in-app notifications raised by the
application and contract lifecycles.

Queued notifications are added to the current session without committing:
they ride in the same transaction as the transition that caused them.
"""

from datetime import datetime, timezone

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.notification import Notification, role_recipient


def _recipient_filter(actor_id, role):
    targets = [actor_id]
    if role:
        targets.append(role_recipient(role))
    return Notification.recipient.in_(targets)


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def queue(*, recipient, title, message="", category="system", priority="normal",
              entity_type="", entity_id=None):
        """
        Add a single notification to the session (caller commits).

        Returns:
            The pending Notification instance.
        """
        notif = Notification(
            recipient=recipient,
            title=title,
            message=message,
            category=category,
            priority=priority,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.session.add(notif)
        return notif

    @staticmethod
    def queue_for_role(role, **kwargs):
        """Broadcast to everyone holding ``role``."""
        return NotificationService.queue(recipient=role_recipient(role), **kwargs)

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_actor(actor_id, role=None, unread_only=False, limit=50, offset=0):
        """
        Notifications addressed to the actor or their role, newest first.

        Returns:
            (items, total)
        """
        q = Notification.query.filter(_recipient_filter(actor_id, role))
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return items, total

    @staticmethod
    def unread_count(actor_id, role=None):
        """Return count of unread notifications."""
        return (
            Notification.query.filter(_recipient_filter(actor_id, role))
            .filter_by(is_read=False)
            .count()
        )

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id, actor_id, role=None):
        """Mark a single notification as read. Other actors' items are 404."""
        notif = db.session.get(Notification, notification_id)
        if notif is None or notif.recipient not in (actor_id, role_recipient(role)):
            raise NotFoundError("Notification", notification_id)
        notif.mark_read()
        db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(actor_id, role=None):
        """Mark all notifications for the actor as read."""
        now = datetime.now(timezone.utc)
        count = (
            Notification.query.filter(_recipient_filter(actor_id, role))
            .filter_by(is_read=False)
            .update({"is_read": True, "read_at": now}, synchronize_session="fetch")
        )
        db.session.commit()
        return count
