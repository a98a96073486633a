# run.py
import asyncio
import logging

from dotenv import load_dotenv
load_dotenv(".env.local")


from permission_bridge.core.app import App
from permission_bridge.core.config import BridgeConfig
from permission_bridge.protocol.errors import AccessDenied
from permission_bridge.server.ws_server import WSServer
from permission_bridge.store.memory_store import InMemoryDocumentStore, user_scoped_rules
from permission_bridge.store.rest_store import RestDocumentStore


async def main():
    config = BridgeConfig()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = App(app_id="dashboard", config=config)

    # Print all boundary fallbacks for now
    def print_fallback(ev):
        print(ev["message"])

    app.event_bus.subscribe("boundary-fallback", print_fallback)

    if config.store_url:
        store = app.attach_store(RestDocumentStore(config.store_url, token=config.store_token))
    else:
        memory = InMemoryDocumentStore(rules=user_scoped_rules())
        memory.sign_in("7")
        store = app.attach_store(memory)

    await app.start()

    ws_server = None
    if config.ws_enabled:
        ws_server = WSServer(app, host=config.ws_host, port=config.ws_port)
        await ws_server.start()

    # Reading someone else's to-dos is denied; the boundary shows the fallback
    try:
        await store.list("users/42/todos")
    except AccessDenied:
        pass

    try:
        if ws_server is not None:
            await ws_server.wait_forever()
        else:
            await asyncio.sleep(0)
    finally:
        if ws_server is not None:
            await ws_server.stop()
        await app.stop()


if __name__ == "__main__":
    asyncio.run(main())
