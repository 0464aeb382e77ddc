# Supabase Auth + public.profiles
# Credentials, sessions and JWTs live in Supabase's auth.users table.
# The backend only reads the caller's profile through the profiles_with_roles view.

"""
profiles_with_roles (view over profiles, roles, departments):
- id: uuid (references auth.users.id)
- email: text
- name: text
- is_active: boolean
- role_id: integer (FK roles.id)
- role_name: text - admin | technician | requester (legacy aliases possible)
- department_id: integer (FK departments.id)
- department_name, department_short_name: text
- created_at: timestamp

A token whose user has no profile row is rejected with 403.
"""
