# Supabase tables: documents, document_chunks, knowledge_base, activity_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in document_service.py,
# document_processor.py and vector_search.py

"""
Expected Supabase table structure (pgvector enabled):

documents:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- project_id: uuid (foreign key to projects.id, nullable)
- file_name: text (not null)
- file_type: text (not null) - MIME type
- file_size: bigint
- storage_path: text - "s3://bucket/key" or a Supabase Storage path
- extracted_content: text (nullable)
- metadata: jsonb (default: '{}') - extracted metadata, processed flag, chunks_count
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

document_chunks:
- id: uuid (primary key)
- document_id: uuid (foreign key to documents.id, on delete cascade)
- user_id: uuid
- project_id: uuid (nullable)
- chunk_text: text (not null)
- chunk_index: integer (not null)
- metadata: jsonb - chunk_length, document_file_name, document_file_type
- embedding: vector(1536) (nullable when embeddings are disabled)
- tsv: tsvector generated from chunk_text ('english'), GIN indexed
- created_at: timestamp (default: now())

knowledge_base:
- id: uuid (primary key)
- bot_id: uuid (foreign key to custom_bots.id, on delete cascade)
- user_id: uuid
- title: text (not null)
- content: text (not null)
- metadata: jsonb (default: '{}')
- embedding: vector(1536)
- created_at: timestamp (default: now())

activity_logs:
- id: uuid (primary key)
- user_id: uuid
- action: text - rag_search, rag_chat, image_generation, ...
- metadata: jsonb
- ip_address: text (nullable)
- user_agent: text (nullable)
- created_at: timestamp (default: now())

RPC functions:
- search_document_chunks(query_embedding vector, match_threshold float, match_count int)
  returns (id, document_id, project_id, chunk_text, metadata, similarity)
- search_knowledge_base(query_embedding vector, bot_id uuid, match_threshold float, match_count int)
  returns (id, bot_id, title, content, metadata, similarity)
"""
