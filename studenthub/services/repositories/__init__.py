"""
Repository Pattern for Database Operations

One repository per MongoDB collection:
- UserRepository: accounts, profiles, favorites
- ProductRepository: listings, search, counters
- PaymentRepository: payments, commission split, receipts
- ChatRepository / MessageRepository: conversations
- CommentRepository: product comments and replies
- RatingRepository: user ratings
- ReportRepository: moderation reports
"""
from .chat_repo import ChatRepository
from .comment_repo import CommentRepository
from .message_repo import MessageRepository
from .payment_repo import PaymentRepository
from .product_repo import ProductRepository
from .rating_repo import RatingRepository
from .report_repo import ReportRepository
from .user_repo import UserRepository

__all__ = [
    "UserRepository",
    "ProductRepository",
    "PaymentRepository",
    "ChatRepository",
    "MessageRepository",
    "CommentRepository",
    "RatingRepository",
    "ReportRepository",
]
