# Supabase table: generated_images
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

generated_images:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- project_id: uuid (foreign key to projects.id, nullable)
- prompt: text (not null) - prompt as submitted
- model_used: text (not null) - flux-schnell, imagen3, flux-context
- image_url: text (not null) - upstream URL or /api/images/placeholder?...
- style: text (nullable)
- size: text - square, portrait, landscape
- is_favorite: boolean (default: false)
- tags: text[] (default: '{}')
- metadata: jsonb - optimized_prompt, width, height, steps, guidance, seed, quality, cost, generation_id, index
- created_at: timestamp (default: now())

Generation progress is not persisted; it lives in generation_registry for the
lifetime of the process.
"""
