from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import httpx

from config.settings import Settings, get_settings
from genzoom.agent import ResponseOrchestrator
from genzoom.core.intents import IntentClassifier
from genzoom.core.memory import ContextStore
from genzoom.core.polling import Backoff, ImagePoller
from genzoom.core.verification import SearchVerifier
from genzoom.dates import process_query
from genzoom.tools.image import ImageClient
from genzoom.tools.search import SearchClient
from genzoom.tools.text_generation import TextGenerationClient, build_chat_model
from genzoom.tools.zoom import ZoomClient


@dataclass
class Runtime:
    orchestrator: ResponseOrchestrator
    store: ContextStore
    http: httpx.AsyncClient

    async def start(self) -> None:
        self.store.start()

    async def close(self) -> None:
        await self.store.stop()
        await self.http.aclose()


def build_runtime(settings: Optional[Settings] = None) -> Runtime:
    settings = settings or get_settings()
    http = httpx.AsyncClient(timeout=settings.http_timeout)

    store = ContextStore(
        max_history=settings.history_max_length,
        expiration=timedelta(seconds=settings.context_expiration_seconds),
        sweep_interval=settings.context_sweep_seconds,
    )
    text = TextGenerationClient(build_chat_model(settings))

    async def prepare_search_query(query: str) -> str:
        return process_query(await text.improve_prompt(query, "search"))

    search = SearchClient(
        http,
        url=settings.exa_url,
        api_key=settings.exa_api_key,
        prepare_query=prepare_search_query,
    )
    images = ImageClient(http, url=settings.flux_url, secret_token=settings.flux_secret_token)
    poller = ImagePoller(
        images,
        Backoff(
            max_attempts=settings.poll_max_attempts,
            initial_delay=settings.poll_initial_delay,
            factor=settings.poll_backoff_factor,
            max_delay=settings.poll_max_delay,
        ),
    )
    zoom = ZoomClient(
        http,
        client_id=settings.zoom_client_id,
        client_secret=settings.zoom_client_secret,
        bot_jid=settings.zoom_bot_jid,
        token_url=settings.zoom_token_url,
        chat_url=settings.zoom_chat_url,
    )

    orchestrator = ResponseOrchestrator(
        store=store,
        classifier=IntentClassifier(text, store),
        text=text,
        search=search,
        verifier=SearchVerifier(text, search),
        images=images,
        poller=poller,
        deliverer=zoom,
    )
    return Runtime(orchestrator=orchestrator, store=store, http=http)
