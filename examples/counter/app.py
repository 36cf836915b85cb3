"""
Counter example: one stateful component rendered on the server and hydrated on the client.
"""

from ssrkit.tree import component, h, use_state


@component(uses=("state",))
def App(props):
    count, set_count = use_state(0)
    return h(
        "div",
        None,
        h("h1", None, "SSR example"),
        h("button", {"onClick": lambda: set_count(count + 1)}, f"Count: {count}"),
    )


def tree():
    return h(App)
