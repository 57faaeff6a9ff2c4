from __future__ import annotations

import click


def open_store(ctx: click.Context):
    """Open the configured store and close it when the command finishes."""
    store = ctx.obj["build_store"](ctx.obj["config"])
    ctx.call_on_close(store.close)
    return store
