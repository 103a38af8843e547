"""HTTP API exposing the token queries."""

import time
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from web3_search import __version__
from web3_search.config_manager import ConfigManager, get_config_manager
from web3_search.erc20_abi import ABICodec, load_erc20_interface
from web3_search.exceptions import (
    ABIError,
    DecodeError,
    DeadlineExceeded,
    RPCError,
    ValidationError,
    Web3SearchException,
)
from web3_search.logging_config import get_logger, setup_logging
from web3_search.models import NativeBalance
from web3_search.rpc import open_connection
from web3_search.service import TokenQueryService

logger = get_logger(__name__)

SERVICE_NAME = "web3-search"

router = APIRouter(prefix="/api/v1")


def success(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def status_for(error: Web3SearchException) -> int:
    """Map a domain error to an HTTP status code."""
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, DeadlineExceeded):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(error, (RPCError, DecodeError)):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(error, ABIError):
        logger.error(f"Interface description misuse: {error.message}")
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def get_query_service(request: Request) -> TokenQueryService:
    return request.app.state.query_service


@router.get("/health")
async def health_check(service: TokenQueryService = Depends(get_query_service)):
    return success(
        {
            "status": "healthy",
            "timestamp": int(time.time()),
            "service": SERVICE_NAME,
            "chainId": service.connection.chain_id,
        }
    )


@router.get("/token/{address}")
async def get_token_info(
    address: str, service: TokenQueryService = Depends(get_query_service)
):
    token_info = await service.get_token_info(address)
    return success(token_info.to_dict())


@router.get("/token/{token_address}/balance/{wallet_address}")
async def get_token_balance(
    token_address: str,
    wallet_address: str,
    service: TokenQueryService = Depends(get_query_service),
):
    balance_info = await service.get_token_balance(token_address, wallet_address)
    return success(balance_info.to_dict())


@router.get("/eth/balance/{address}")
async def get_eth_balance(
    address: str, service: TokenQueryService = Depends(get_query_service)
):
    balance = await service.get_native_balance(address)
    return success(NativeBalance(address=address, balance=balance).to_dict())


async def handle_query_error(
    request: Request, exc: Web3SearchException
) -> JSONResponse:
    body = {"success": False, "error": exc.message, "code": exc.code}
    if exc.hint:
        body["hint"] = exc.hint
    return JSONResponse(status_code=status_for(exc), content=body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


def create_app(config: ConfigManager) -> FastAPI:
    """Create the FastAPI application.

    The node connection is opened when the application starts and closed
    when it stops, including when startup fails part way.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with open_connection(
            config.rpc_url, timeout=config.get("rpc", "timeout")
        ) as connection:
            app.state.query_service = TokenQueryService(
                connection,
                ABICodec(load_erc20_interface()),
                default_timeout=config.get("query", "timeout"),
            )
            logger.info(f"{SERVICE_NAME} {__version__} started")
            yield
            logger.info(f"Shutting down {SERVICE_NAME}...")

    app = FastAPI(
        title=SERVICE_NAME,
        description="ERC-20 token and native balance queries over JSON-RPC",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(Web3SearchException, handle_query_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/api/v1/health", status_code=status.HTTP_302_FOUND)

    return app


def main() -> None:
    config = get_config_manager()
    setup_logging(
        level=config.get("logging", "level"),
        log_file=config.get("logging", "file"),
        format_str=config.get("logging", "format"),
    )

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Invalid configuration: {error}")
        raise SystemExit(1)

    host = config.get("server", "host")
    port = config.get("server", "port")
    logger.info(f"Server starting on {host}:{port}")
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_level="debug" if config.get("server", "debug") else "info",
    )


if __name__ == "__main__":
    main()
