# Supabase Auth
# Accounts live in Supabase's auth.users table; no application tables here.

"""
Supabase Auth calls used by AuthService:
- auth.sign_up() - register a user, full_name kept in user_metadata
- auth.sign_in_with_password() - issue an access token
- auth.get_user(jwt=...) - resolve the bearer token sent to every /api route
- auth.sign_out()

Every application table (projects, documents, custom_bots, ...) stores the
auth.users id in a user_id / owner_id column.
"""
