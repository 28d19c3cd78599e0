# Supabase tables: conversations, messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

conversations:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- project_id: uuid (foreign key to projects.id, nullable)
- title: text (not null)
- metadata: jsonb (default: '{}') - last_model, total_messages
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

messages:
- id: uuid (primary key)
- conversation_id: uuid (foreign key to conversations.id, on delete cascade)
- role: text (not null) - values: user, assistant, system
- content: text (not null)
- metadata: jsonb (default: '{}') - for RAG answers: sources, confidence, model, tokens_used
- created_at: timestamp (default: now())
"""
