# Supabase table: projects
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

projects:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- category: text (not null) - e.g. proposal, development, operation, consulting
- status: text (default: 'active') - values: active, completed, archived, on_hold
- user_id: uuid (foreign key to auth.users.id, not null)
- owner_id: uuid (foreign key to auth.users.id, not null)
- tags: text[] (default: '{}')
- metadata: jsonb (default: '{}')
- is_public: boolean (default: false)
- visibility_level: text (default: 'private') - values: private, team, public
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
