"""Stamp every response from the blog."""


def handler(ctx):
    ctx.res.headers.set("x-site", "nadder-blog")
