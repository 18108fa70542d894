from contextlib import asynccontextmanager

@asynccontextmanager
async def no_transaction():
    """Writes run without a session; used on standalone servers and in tests"""
    yield None

def mongo_transaction(client):
    """Factory for a context manager yielding a session inside a started transaction"""
    @asynccontextmanager
    async def _transaction():
        async with await client.start_session() as session:
            async with session.start_transaction():
                yield session
    return _transaction
