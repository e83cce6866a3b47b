"""Blog — two independently packaged route sets composed into one table.

Demonstrates priority tiers, regex constraints, ``.:format`` variants,
wildcards, CSRF opt-out, and reverse routing.

Run:
    wren routes app:routes
"""

from wren import Priority, RouteRegistry, RouteSet, RoutingConfig

articles = RouteSet("articles")


@articles.get("articles", handler_id="articles.index")
def index():
    return "All articles"


@articles.get("articles/new", handler_id="articles.new", priority=Priority.FIRST)
def new():
    return "New article form"


@articles.get(
    "articles/:id<[0-9]+>",
    "articles/:id<[0-9]+>.:format",
    handler_id="articles.show",
)
def show(id: str, format: str = "html"):
    return f"Article {id} as {format}"


@articles.post("articles", handler_id="articles.create")
def create():
    return "Created"


ops = RouteSet("ops")


@ops.post("hooks/deploy", handler_id="ops.deploy", skip_csrf=True)
def deploy():
    return "Deploying"


@ops.get("service/:id/proxy/:*", handler_id="ops.proxy")
def proxy(id: str, **rest: str):
    return f"Proxy {id} -> {rest['*']}"


@ops.get(":*", handler_id="ops.not_found", priority=Priority.LAST)
def not_found(**rest: str):
    return f"Nothing at /{rest['*']}"


routes = RouteRegistry(RoutingConfig(log_routes=False))
routes.include(articles)
routes.include(ops)


def dispatch(method: str, path: str) -> str:
    match = routes.resolve(method, path)
    handler = routes.handler(match.handler_id)
    return handler(**match.path_params)
