"""Blog: a filesystem-routed site with markdown posts and kida pages.

Demonstrates:
- pages under ``routes/`` written in markdown and kida, chained per page
- ``_data.yaml`` files inherited down the tree
- a ``_middleware.py`` file and a ``_404.md`` error page
- a ``.py`` route exporting a ``GET`` handler
- cache-busted static assets via ``asset()`` in templates

Run:
    cd examples/blog && python app.py
"""

from pathlib import Path

from nadder import App, AppConfig
from nadder.renderers.kida import kida_renderer
from nadder.renderers.markdown import markdown_renderer

HERE = Path(__file__).parent

config = AppConfig(
    routes_dir=HERE / "routes",
    static_dir=HERE / "static",
    build_id="example",
)
app = App(config)

app.use_renderer(markdown_renderer())
app.use_renderer(kida_renderer(app.template_env, asset_url=app.asset_url))


@app.use_filter()
def shout(value: str) -> str:
    """Upper-case a string for headings."""
    return str(value).upper()


@app.route("/health")
def health(ctx):
    ctx.res.send_json({"ok": True})


if __name__ == "__main__":
    app.run()
