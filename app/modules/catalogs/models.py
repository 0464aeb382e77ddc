# Database model for catalog tables

"""
departments table:
- id: integer (PK)
- name: text, unique
- short_name: text, unique
- is_active: boolean

roles table:
- id: integer (PK)
- name: text - admin | technician | requester
- description: text
- is_active: boolean

Both are read-mostly; incidents, requirements, profiles and registration
requests reference them.
"""
