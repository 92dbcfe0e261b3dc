import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from coworking.config import Settings
from coworking.context import StoreContext
from coworking.routers import bookings, desks, expenses, stats, waiting_list

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    "lifespan for opening and closing the data store"
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    logger.info(f"Starting with {settings.backend} backend")
    context = StoreContext.from_settings(settings)
    await context.start()
    app.state.store = context
    yield
    await context.close()


app = FastAPI(
    lifespan=lifespan,
    title="Coworking desk ledger",
    description="Desk bookings, expenses and revenue for a coworking space, based on FastAPI.",
    version="0.1.0",
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
)


app.include_router(desks.router)
app.include_router(bookings.router)
app.include_router(expenses.router)
app.include_router(expenses.recurring_router)
app.include_router(stats.router)
app.include_router(waiting_list.router)
