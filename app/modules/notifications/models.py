# Database model for notifications

"""
notifications table:
- id: uuid (PK)
- user_id: uuid (FK profiles.id), the recipient
- title, message: text
- type: text - incident | requirement | user | system
- priority: text, nullable - low | medium | high | urgent
- is_read: boolean, default false
- created_at: timestamptz

Rows are also created by the lifecycle service when an incident or
requirement is assigned. Every new row is broadcast on the realtime channel
"notifications" with event "new_notification".
"""
