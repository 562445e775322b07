# guess_link/api/websockets.py
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState
from guess_link.core.config import settings
from guess_link.services.connection import ClientConnection
from guess_link.services.gateway import ConnectionGateway

logger = logging.getLogger("guess_link.api.websockets")  # Logger for this module
router = APIRouter()


@router.websocket("/ws")
async def game_websocket_endpoint(websocket: WebSocket):
	"""
	One socket per client. The client is identified by a server-issued id sent in the
	initial ``connection`` message; rooms are joined and left through messages.
	"""
	gateway: ConnectionGateway | None = getattr(websocket.app.state, "gateway", None)
	await websocket.accept()
	if gateway is None:
		logger.error("WS connection refused: gateway not initialised.")
		await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="Server not ready")
		return

	connection = ClientConnection(websocket, max_queue_size=settings.OUTBOUND_QUEUE_MAX_SIZE)
	client_id = gateway.register(connection)
	connection.start(settings.WS_PING_INTERVAL_SECONDS)
	logger.info(f"WS Connected: C:{client_id} from {websocket.client}")

	try:
		while True:
			raw_message = await websocket.receive_text()
			gateway.handle_message(client_id, raw_message)
			if connection.closed:
				logger.info(f"C:{client_id} - Writer stopped. Ending receive loop.")
				break
	except WebSocketDisconnect as e:
		logger.info(f"WS Disconnected: C:{client_id} (code {e.code}).")
	except Exception as e:
		logger.exception(f"!!! UNEXPECTED ERROR in WS C:{client_id}: {type(e).__name__} - {e} !!!")
	finally:
		gateway.handle_disconnect(client_id)
		await connection.close()
		if websocket.client_state != WebSocketState.DISCONNECTED:
			try:
				await websocket.close(code=status.WS_1001_GOING_AWAY)
			except RuntimeError as re:
				logger.debug(f"C:{client_id} - Socket already closed in finally: {re}")
