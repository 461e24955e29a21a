# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access:
#
#   article_service  - writes to the Article aggregate (create, update,
#                      status, images, keywords)
#   read_service     - visibility-checked fetch, cursor search, listings
#   board_service    - board / keyword admin and the enum lookups
#   serializers      - ORM instance to dict helpers
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
