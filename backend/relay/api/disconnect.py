"""
Ties outbound work to the lifetime of the inbound connection.

ASGI servers do not cancel the handler when the client goes away; they only
deliver an http.disconnect message on receive(). run_until_disconnect races
the work against a listener for that message and cancels the work when the
client leaves first.
"""
import asyncio
from typing import Awaitable, TypeVar

from starlette.requests import ClientDisconnect, Request

T = TypeVar("T")


async def _wait_for_disconnect(request: Request) -> None:
    # Only valid once the request body has been fully consumed
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def run_until_disconnect(request: Request, work: Awaitable[T]) -> T:
    """
    Await work unless the client disconnects first.
    
    Args:
        request: Inbound request whose body has already been read
        work: Coroutine or future performing the outbound call
        
    Returns:
        The result of work
        
    Raises:
        ClientDisconnect: If the client disconnected before work finished;
            work is cancelled and no longer awaited
    """
    work_task = asyncio.ensure_future(work)
    listener = asyncio.ensure_future(_wait_for_disconnect(request))
    
    try:
        await asyncio.wait({work_task, listener}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work_task.cancel()
        raise
    finally:
        listener.cancel()
    
    if work_task.done():
        return work_task.result()
    
    # Threadpool work cannot be interrupted; it is cancelled and left behind
    work_task.cancel()
    raise ClientDisconnect()
