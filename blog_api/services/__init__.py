# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# database access for a single domain aggregate:
#
#   article_service  : CRUD + pagination + cached reads for Article
#   comment_service  : append-only comment creation and lookup
#   category_service : read-only Category lookups
#   token_service    : bearer token issue / authenticate / revoke
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Payloads arrive already validated by
# ``blog_api.validation``.
