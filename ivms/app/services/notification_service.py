"""
Notification Service.

Handles creation, fan-out and state management of notifications.
None of these methods commit; the caller owns the transaction.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Iterable

from ivms.app.core.exceptions import NotFoundError
from ivms.app.domain.workflow import Transition
from ivms.app.models.enums import Department
from ivms.app.models.notification import Notification, NotificationType
from ivms.app.models.user import User
from ivms.app.services.notification_templates import render


class NotificationService:

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None
    ) -> Notification:
        """Create a single notification."""
        notif = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id
        )
        db.add(notif)
        await db.flush()
        return notif

    @staticmethod
    async def get_user_ids_by_department(db: AsyncSession, department: Department) -> List[int]:
        """IDs of active users in a department."""
        result = await db.execute(
            select(User.id).where(User.department == department, User.is_active == True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_from_template(
        db: AsyncSession,
        user_ids: Iterable[int],
        type: NotificationType,
        context: Dict[str, Any],
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None
    ) -> List[Notification]:
        """Render a template once and create one notification per distinct recipient."""
        title, message = render(type, context)

        notifications = [
            Notification(
                user_id=uid,
                type=type,
                title=title,
                message=message,
                entity_type=entity_type,
                entity_id=entity_id
            )
            for uid in dict.fromkeys(user_ids)
        ]

        if notifications:
            db.add_all(notifications)
            await db.flush()

        return notifications

    @staticmethod
    async def notify_department(
        db: AsyncSession,
        department: Department,
        type: NotificationType,
        context: Dict[str, Any],
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None
    ) -> List[Notification]:
        user_ids = await NotificationService.get_user_ids_by_department(db, department)
        return await NotificationService.create_from_template(
            db, user_ids, type, context, entity_type, entity_id
        )

    @staticmethod
    async def notify_transition(
        db: AsyncSession,
        transition: Transition,
        owner_id: Optional[int],
        context: Dict[str, Any],
        entity_type: str,
        entity_id: int
    ) -> List[Notification]:
        """
        Fire the notification side effect of a workflow transition.

        Recipients are the request owner (if the edge says so) plus the
        active users of every department listed on the edge.
        """
        recipients: List[int] = []
        if transition.notify_owner and owner_id is not None:
            recipients.append(owner_id)
        for department in transition.notify_departments:
            recipients.extend(await NotificationService.get_user_ids_by_department(db, department))

        if not recipients:
            return []

        return await NotificationService.create_from_template(
            db,
            recipients,
            NotificationType(transition.event),
            context,
            entity_type,
            entity_id
        )

    # --- Inbox ---

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        unread_only: bool = False,
        type: Optional[NotificationType] = None,
        limit: int = 50
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)

        if unread_only:
            query = query.where(Notification.is_read == False)

        if type:
            query = query.where(Notification.type == type)

        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_for_user(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
        """Fetch a notification owned by user_id; someone else's counts as not found."""
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", notification_id)
        return notification

    @staticmethod
    async def unread_count(db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read == False
            )
        )
        return result.scalar() or 0

    @staticmethod
    async def mark_read(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
        """Mark a notification as read."""
        notification = await NotificationService.get_for_user(db, notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: int) -> int:
        """Mark all notifications for user as read."""
        stmt = update(Notification).where(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).values(
            is_read=True,
            read_at=datetime.now(timezone.utc)
        )
        result = await db.execute(stmt)
        return result.rowcount

    @staticmethod
    async def delete(db: AsyncSession, notification_id: int, user_id: int) -> None:
        """Dismiss a notification."""
        await NotificationService.get_for_user(db, notification_id, user_id)
        await db.execute(delete(Notification).where(Notification.id == notification_id))
