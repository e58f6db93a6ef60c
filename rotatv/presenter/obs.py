"""
OBS Studio presenter over obs-websocket v5.

Only the handful of requests the rotation needs are implemented: switch the
program scene, point a media source at a file, and toggle scene items.
"""

import asyncio
import base64
import hashlib
import logging
import uuid
from typing import Any, Dict, Optional

import aiohttp

from rotatv.catalog.models import MediaItem
from rotatv.errors import CollaboratorError
from rotatv.presenter.base import Presenter

logger = logging.getLogger(__name__)

# obs-websocket opcodes
OP_HELLO = 0
OP_IDENTIFY = 1
OP_IDENTIFIED = 2
OP_EVENT = 5
OP_REQUEST = 6
OP_REQUEST_RESPONSE = 7

RPC_VERSION = 1


def build_auth_string(password: str, salt: str, challenge: str) -> str:
    """Compute the obs-websocket v5 authentication response."""
    secret = base64.b64encode(hashlib.sha256((password + salt).encode()).digest()).decode()
    return base64.b64encode(hashlib.sha256((secret + challenge).encode()).digest()).decode()


class ObsPresenter(Presenter):
    """Presenter that drives OBS through its websocket API."""

    def __init__(
        self,
        url: str = "ws://localhost:4455",
        password: str = "",
        activity_item: Optional[str] = None,
        activity_scene: Optional[str] = None,
        request_timeout: float = 10.0,
    ):
        self.url = url
        self.password = password
        self.activity_item = activity_item
        self.activity_scene = activity_scene
        self.request_timeout = request_timeout

        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._scene_item_ids: Dict[tuple[str, str], int] = {}

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        """Connect and complete the Hello/Identify handshake."""
        if self.connected:
            return

        logger.info(f"Connecting to OBS websocket at {self.url}")
        try:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self.request_timeout)
                )
            self._ws = await self._session.ws_connect(self.url)

            hello = await self._ws.receive_json(timeout=self.request_timeout)
            if hello.get("op") != OP_HELLO:
                raise CollaboratorError("obs", f"Expected Hello, got op {hello.get('op')}")

            identify: Dict[str, Any] = {"rpcVersion": RPC_VERSION, "eventSubscriptions": 0}
            auth = hello.get("d", {}).get("authentication")
            if auth:
                identify["authentication"] = build_auth_string(
                    self.password, auth["salt"], auth["challenge"]
                )
            await self._ws.send_json({"op": OP_IDENTIFY, "d": identify})

            identified = await self._ws.receive_json(timeout=self.request_timeout)
            if identified.get("op") != OP_IDENTIFIED:
                raise CollaboratorError("obs", "OBS rejected identification")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            await self.close()
            raise CollaboratorError("obs", f"Could not connect to {self.url}: {e}", e) from e

        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info("Connected to OBS")

    async def close(self) -> None:
        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

        for future in self._pending.values():
            if not future.done():
                future.set_exception(CollaboratorError("obs", "Connection closed"))
        self._pending.clear()

    async def _read_loop(self) -> None:
        """Dispatch request responses to their waiting futures."""
        assert self._ws is not None
        async for message in self._ws:
            if message.type != aiohttp.WSMsgType.TEXT:
                if message.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                    break
                continue

            payload = message.json()
            if payload.get("op") != OP_REQUEST_RESPONSE:
                continue

            data = payload.get("d", {})
            future = self._pending.pop(data.get("requestId", ""), None)
            if future is None or future.done():
                continue

            status = data.get("requestStatus", {})
            if status.get("result"):
                future.set_result(data.get("responseData") or {})
            else:
                future.set_exception(CollaboratorError(
                    "obs",
                    f"{data.get('requestType')} failed: "
                    f"{status.get('code')} {status.get('comment', '')}".strip(),
                ))

        logger.warning("OBS websocket closed")

    async def request(self, request_type: str, request_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send one request and wait for its response.

        Raises:
            CollaboratorError: On connection failure, timeout or a failed request.
        """
        if not self.connected:
            await self.connect()
        assert self._ws is not None

        request_id = uuid.uuid4().hex
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._ws.send_json({
                "op": OP_REQUEST,
                "d": {
                    "requestType": request_type,
                    "requestId": request_id,
                    "requestData": request_data or {},
                },
            })
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            raise CollaboratorError("obs", f"{request_type} timed out", e) from e
        except (aiohttp.ClientError, ConnectionResetError) as e:
            raise CollaboratorError("obs", f"{request_type} failed: {e}", e) from e
        finally:
            self._pending.pop(request_id, None)

    async def _scene_item_id(self, item_ref: str, scene: str) -> int:
        key = (scene, item_ref)
        if key not in self._scene_item_ids:
            response = await self.request(
                "GetSceneItemId", {"sceneName": scene, "sourceName": item_ref}
            )
            self._scene_item_ids[key] = int(response["sceneItemId"])
        return self._scene_item_ids[key]

    async def set_visible(self, item_ref: str, scene: str, visible: bool) -> None:
        scene_item_id = await self._scene_item_id(item_ref, scene)
        await self.request("SetSceneItemEnabled", {
            "sceneName": scene,
            "sceneItemId": scene_item_id,
            "sceneItemEnabled": visible,
        })

    async def show(self, item: MediaItem, scene: str) -> None:
        source = item.scene_item or item.id
        if item.source_ref:
            await self.request("SetInputSettings", {
                "inputName": source,
                "inputSettings": {
                    "local_file": item.source_ref,
                    "looping": item.loops > 1,
                },
            })
        await self.set_visible(source, scene, True)

    async def hide(self, item_ref: str, scene: str) -> None:
        await self.set_visible(item_ref, scene, False)

    async def switch_scene(self, scene: str) -> None:
        await self.request("SetCurrentProgramScene", {"sceneName": scene})

    async def set_activity(self, text: Optional[str]) -> None:
        if not self.activity_item or not self.activity_scene:
            return
        if text:
            await self.request("SetInputSettings", {
                "inputName": self.activity_item,
                "inputSettings": {"text": text},
            })
        await self.set_visible(self.activity_item, self.activity_scene, bool(text))
