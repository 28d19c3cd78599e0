# Supabase tables: custom_bots (knowledge entries live in knowledge_base, see rag/models.py)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

custom_bots:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null) - creator
- name: text (not null)
- description: text (not null)
- avatar: text (nullable) - emoji or image URL
- instructions: text (nullable) - default context for the bot's answers
- tags: text[] (default: '{}')
- is_public: boolean (default: false)
- is_active: boolean (default: true)
- usage_count: integer (default: 0)
- like_count: integer (default: 0)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
