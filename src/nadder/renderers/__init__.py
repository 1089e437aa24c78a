"""Built-in rendering engines.

Each module builds a ``Renderer`` capability to pass to
``App.use_renderer``::

    from nadder.renderers.kida import kida_renderer
    from nadder.renderers.markdown import markdown_renderer

    app.use_renderer(markdown_renderer())
    app.use_renderer(kida_renderer(app.template_env))

Engines are chained in registration order, so a page that asks for
``renderers: [markdown, kida]`` is converted to HTML first and then
rendered as a template.
"""
