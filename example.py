"""Example: in-process topic bus with wildcards, priorities and a wiretap."""

import logging

from topicbus import add_wire_tap, create_channel

logging.basicConfig(level=logging.INFO)


def main() -> None:
    add_wire_tap(lambda envelope: print("tap", envelope.to_dict()))

    orders = create_channel("orders", "order.*")
    audit = orders.subscribe(lambda data: print("audit", data)).with_priority(10)
    orders.subscribe(lambda data: print("first order only", data)).dispose_after(1)

    create_channel("orders", "order.created").publish({"id": 1})
    create_channel("orders", "order.shipped").publish({"id": 1})

    audit.unsubscribe()


if __name__ == "__main__":
    main()
