from tourguide.services.messaging.message_service import MessageService

__all__ = ["MessageService"]
