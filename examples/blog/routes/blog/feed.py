"""JSON feed of the blog section.

The explicit pattern puts this route ahead of ``[slug].md``.
"""

pattern = "/blog/feed.json"
posts = ["hello-world", "second-post"]


def GET(ctx):
    ctx.res.send_json({"section": ctx.data["section"], "posts": ctx.data["posts"]})
