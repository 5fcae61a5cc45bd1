"""Fire-and-forget notification seam.

Delivery (push, e-mail, realtime fan-out) lives outside this service. Routers
hand events to a publisher through FastAPI background tasks, so the request never
waits on delivery and a failing sink never fails the request that triggered it.
"""

import structlog

logger = structlog.get_logger(__name__)

GROUP_POST_INVITE = "group_post_invite"
GROUP_POST_ATTESTATION = "group_post_attestation"


class NotificationPublisher:
    def publish(
        self,
        kind: str,
        *,
        recipient_id: str,
        actor_id: str,
        group_post_id: int,
        **data,
    ) -> None:
        try:
            self.deliver(
                kind,
                recipient_id=recipient_id,
                actor_id=actor_id,
                group_post_id=group_post_id,
                **data,
            )
        except Exception:
            logger.exception(
                "notification.delivery_failed",
                kind=kind,
                recipient_id=recipient_id,
                group_post_id=group_post_id,
            )

    def deliver(
        self,
        kind: str,
        *,
        recipient_id: str,
        actor_id: str,
        group_post_id: int,
        **data,
    ) -> None:
        logger.info(
            "notification.published",
            kind=kind,
            recipient_id=recipient_id,
            actor_id=actor_id,
            group_post_id=group_post_id,
            **data,
        )


default_publisher = NotificationPublisher()
