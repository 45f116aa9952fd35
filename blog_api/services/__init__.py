# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   article_service : CRUD + pagination + cache for Article
#   comment_service : paginated listing and creation of comments
#   token_service   : access token lookup, issue and revocation
#   user_service    : find-or-create users from a login profile
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Writes return a ``SaveResult`` rather than
# raising on invalid input.
