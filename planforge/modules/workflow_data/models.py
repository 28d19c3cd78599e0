# Supabase tables: workflow_data, workflow_data_links
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

workflow_data:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- user_id: uuid (foreign key to auth.users.id, not null)
- workflow_type: text (not null) - values: proposal, development, operation
- data: jsonb (not null) - the workflow's form state
- version: integer (default: 1)
- status: text (default: 'draft') - values: draft, in_progress, completed
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- unique constraint on (project_id, user_id, workflow_type, version)

workflow_data_links:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- source_workflow: text (not null)
- target_workflow: text (not null)
- source_data_id: uuid (foreign key to workflow_data.id)
- target_data_id: uuid (foreign key to workflow_data.id)
- link_type: text (not null) - e.g. derives_from, feeds_into
- mappings: jsonb (default: '[]') - field-to-field mappings
- created_at: timestamp (default: now())
"""
