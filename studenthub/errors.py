"""
Common Error Constants

Centralized error messages to avoid string duplication across routers.
"""

# Auth errors
ERROR_NO_TOKEN = "Authentication required. No token provided."
ERROR_INVALID_TOKEN = "Invalid token"
ERROR_TOKEN_EXPIRED = "Token expired"
ERROR_ADMIN_REQUIRED = "Admin access required"
ERROR_INVALID_CREDENTIALS = "Invalid credentials"
ERROR_INVALID_CRON_SECRET = "Invalid CRON_SECRET"

# User errors
ERROR_USER_NOT_FOUND = "User not found"
ERROR_USER_EXISTS = "User already exists with this email"
ERROR_RATE_SELF = "You cannot rate yourself"
ERROR_REPORT_SELF = "You cannot report yourself"

# Product errors
ERROR_PRODUCT_NOT_FOUND = "Product not found"
ERROR_PRODUCT_UNAVAILABLE = "Product is not available"
ERROR_PRODUCT_OWN = "You cannot buy your own product"
ERROR_PRODUCT_FORBIDDEN = "Not authorized to modify this product"
ERROR_ALREADY_FAVORITE = "Product already in favorites"
ERROR_NOT_FAVORITE = "Product not in favorites"

# Chat errors
ERROR_CHAT_NOT_FOUND = "Chat not found"
ERROR_CHAT_FORBIDDEN = "Not authorized to access this chat"
ERROR_CHAT_SELF = "Cannot create chat with yourself"
ERROR_RECEIVER_NOT_FOUND = "Receiver not found"
ERROR_SOCKET_USER_MISMATCH = "userId does not match the connected user"

# Comment errors
ERROR_COMMENT_NOT_FOUND = "Comment not found"
ERROR_PARENT_COMMENT_NOT_FOUND = "Parent comment not found"
ERROR_COMMENT_FORBIDDEN = "Not authorized to modify this comment"
ERROR_ALREADY_LIKED = "Comment already liked"
ERROR_NOT_LIKED = "Comment not liked yet"

# Payment errors
ERROR_PAYMENT_NOT_FOUND = "Payment not found"
ERROR_PAYMENT_FAILED = "Payment failed"
ERROR_PAYMENT_NOT_COMPLETED = "Payment is not completed yet"
ERROR_RECEIPT_CONFIRMED = "Receipt has already been confirmed"
ERROR_INVALID_SIGNATURE = "Invalid signature"

# Generic errors
ERROR_INTERNAL = "Server error"
