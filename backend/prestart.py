import asyncio
from app.core.config import settings
from app.core.database import build_engine, init_db


async def main():
    if not settings.database_configured:
        print("DATABASE_URL not configured, nothing to initialize.")
        return

    print("Running database initialization...")
    engine = build_engine(settings.async_database_url)
    try:
        await init_db(engine)
        print("Database tables checked/created successfully.")
    finally:
        await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())
