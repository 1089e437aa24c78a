"""Chat: WebSocket rooms built on channels.

Each connection to ``/rooms/<name>`` upgrades, joins the channel named
after the room, and relays every message it receives to everyone in
that room. A plain HTTP request gets a 426 explaining how to connect.

Run:
    cd examples/chat && python app.py
"""

from pathlib import Path

from nadder import App, AppConfig
from nadder.renderers.markdown import markdown_renderer

HERE = Path(__file__).parent

app = App(AppConfig(routes_dir=HERE / "routes", static_dir=None))
app.use_renderer(markdown_renderer())


@app.route("/rooms/[name]")
async def room(ctx):
    socket = await ctx.upgrade.socket()
    if socket is None:
        ctx.res.status = 426
        ctx.res.body = "Connect with a WebSocket client."
        return

    name = ctx.req.path_params["name"]
    await ctx.upgrade.channel.join(name)
    await ctx.upgrade.channel.broadcast({"room": name, "event": "joined"})

    @socket.on_message
    async def relay(message):
        await ctx.upgrade.channel.broadcast({"room": name, "text": message})


if __name__ == "__main__":
    app.run()
