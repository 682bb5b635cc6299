import asyncio

from megan_bot.schemas.catalog import Product

SENDER = "4455667788"


class FakeClock:
    """Virtual time for asyncio sleeps: nothing wakes until advance() passes its deadline."""

    def __init__(self):
        self.now = 0.0
        self._waiters: list[tuple[float, asyncio.Future]] = []

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + delay, future))
        await future

    async def _settle(self) -> None:
        for _ in range(20):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        # Let freshly created timer tasks register their sleeps at the current time first.
        await self._settle()
        self.now += seconds
        for deadline, future in list(self._waiters):
            if deadline <= self.now and not future.done():
                future.set_result(None)
        self._waiters = [(d, f) for d, f in self._waiters if not f.done()]
        await self._settle()


def make_product(code: str, name: str = "Reloj Test", price="150") -> Product:
    return Product(
        code=code,
        name=name,
        description=f"Descripción de {name}",
        price=price,
        image_url=f"https://img.example/{code}.jpg",
    )


def sent_texts(messenger) -> list[str]:
    """Every text the bot sent, in order, whatever the message layout."""
    texts = []
    for call in messenger.mock_calls:
        name, args, _ = call
        if name in ("send_text", "send_buttons", "send_quick_replies"):
            texts.append(args[1])
    return texts


def sent_button_payloads(messenger) -> list[list[str]]:
    return [
        [button.get("payload") or button.get("url") for button in call.args[2]]
        for call in messenger.send_buttons.call_args_list
    ]
