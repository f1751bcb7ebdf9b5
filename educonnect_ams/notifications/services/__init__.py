"""
Notification service layer.

- content      titles, messages and email bodies for reminders
- preferences  which channel a user's reminders go out on
- transport    the email transport (Django mail backend)
- delivery     reminder notifications and the email delivery queue
"""
