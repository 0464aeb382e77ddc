# Database model for user profiles and registration requests

"""
profiles table (one row per auth.users row, created by a trigger on sign-up):
- id: uuid (PK, references auth.users.id)
- name, email: text
- role_id: integer (FK roles.id)
- role_name: text, denormalised from roles.name
- department_id: integer (FK departments.id)
- is_active: boolean, default true
- is_email_verified: boolean
- created_at: timestamptz

A BEFORE DELETE trigger on profiles clears or reassigns incident/requirement
references to the deleted user.

profiles_with_roles (view): profiles.* plus department_name, department_short_name.

registration_requests table:
- id: uuid (PK)
- name, email: text
- department_id: integer (FK departments.id)
- requested_role: text - requester
- status: text - pending | approved | rejected
- created_at: timestamptz

Registration requests hold no credential; the account is created by the approval workflow.
"""
