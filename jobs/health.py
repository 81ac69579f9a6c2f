"""
Health check server for scheduler monitoring.

Provides HTTP endpoint for health checks and monitoring.
"""

import asyncio

from aiohttp import web
from loguru import logger

from blockminer.config.database import check_database_health
from jobs.scheduler import BlockScheduler

SCHEDULER_KEY = web.AppKey("block_scheduler", BlockScheduler)


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with scheduler status and the last settled block
    """
    block_scheduler = request.app[SCHEDULER_KEY]

    try:
        is_running = block_scheduler.running
        jobs = block_scheduler.get_jobs()
        job_info = [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in jobs
        ]
        last_block = block_scheduler.last_block

        return web.json_response(
            {
                "status": "healthy" if is_running else "stopped",
                "scheduler_running": is_running,
                "jobs_count": len(jobs),
                "jobs": job_info,
                "last_block_number": last_block.block_number if last_block else None,
                "last_settled_at": last_block.settled_at.isoformat() if last_block else None,
            },
            status=200 if is_running else 503,
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return web.json_response(
            {
                "status": "unhealthy",
                "error": str(e),
            },
            status=503,
        )


async def readiness_handler(request: web.Request) -> web.Response:
    """
    Readiness check endpoint.

    Ready when the scheduler is running and the database answers.

    Returns:
        JSON response indicating if scheduler is ready
    """
    scheduler_running = request.app[SCHEDULER_KEY].running
    database_ok = scheduler_running and await check_database_health()

    if not database_ok:
        return web.json_response(
            {
                "status": "not_ready",
                "ready": False,
                "scheduler_running": scheduler_running,
                "database": database_ok,
            },
            status=503,
        )

    return web.json_response(
        {
            "status": "ready",
            "ready": True,
        }
    )


async def liveness_handler(request: web.Request) -> web.Response:
    """
    Liveness check endpoint.

    Returns:
        JSON response indicating if the process is alive
    """
    return web.json_response(
        {
            "status": "alive",
            "alive": True,
        }
    )


def create_health_app(block_scheduler: BlockScheduler) -> web.Application:
    """
    Build the health application for a scheduler.

    Args:
        block_scheduler: Scheduler to report on

    Returns:
        aiohttp application
    """
    app = web.Application()
    app[SCHEDULER_KEY] = block_scheduler
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    block_scheduler: BlockScheduler,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start health check server.

    Args:
        block_scheduler: Scheduler to report on
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(create_health_app(block_scheduler))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    logger.info(f"  - Health: http://{host}:{port}/health")
    logger.info(f"  - Readiness: http://{host}:{port}/readiness")
    logger.info(f"  - Liveness: http://{host}:{port}/liveness")

    return runner, site


async def stop_health_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped successfully")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Error stopping health check server: {e}")
