"""
Walk through the post client against a local PostgreSQL database.

Run from the repository root:
    python -m examples.post_client_example
"""

import asyncio

from loguru import logger

from examples.db_setup import close_connections, setup_example_schema, setup_postgres_connection
from postsync import ImageFile, ListView, OperationKind, PostClient, SyncConfig
from postsync.backend import PostgresGateway
from postsync.config import BackendConfig
from postsync.logger import setup_logger


def print_view(client: PostClient, view: ListView):
    cursor = client.state.pagination(view)
    logger.info(
        "{}: {} item(s), page {}/{} ({} total)",
        view.value,
        len(client.state.items(view)),
        cursor.page,
        cursor.total_pages,
        cursor.total,
    )


def log_search(state):
    if state.loading[OperationKind.SEARCH]:
        logger.info("Search in flight for {!r}", state.search_query)


async def main():
    setup_logger("INFO")
    backend = BackendConfig()

    await setup_postgres_connection(pool_name=backend.db_name)
    await setup_example_schema(backend)

    client = PostClient(PostgresGateway(backend), config=SyncConfig(page_size=3))
    client.subscribe(log_search)

    try:
        # Create a few posts for two authors
        for i in range(1, 6):
            await client.create_post(
                f"Post {i}", f"Notes about golang, part {i}", user_id="alice"
            )
        first = await client.create_post("Hello", "World", user_id="bob", status="published")
        logger.info("Created {} ({})", first.data.title, first.data.status.value)

        # Primary feed with pagination
        await client.get_all_posts()
        print_view(client, ListView.PRIMARY)
        while client.can_load_more:
            await client.load_more_posts()
        print_view(client, ListView.PRIMARY)

        # Per-user view and search
        await client.get_posts_by_user("alice")
        print_view(client, ListView.BY_USER)
        await client.search("golang", limit=10)
        print_view(client, ListView.SEARCH_RESULTS)

        # Publish a draft; every view holding it reflects the change
        draft = client.user_posts[0]
        await client.get_post_by_id(draft.id)
        await client.update_post(draft.id, {"status": "published"})
        logger.info("Current post is now {}", client.current_post.status.value)

        # Featured image upload
        upload = await client.upload_image(
            ImageFile(data=b"GIF89a", filename="cover.gif", content_type="image/gif"), draft.id
        )
        logger.info("Uploaded image to {}", upload.data.url)

        # Failures land in the per-kind error map and clear themselves
        result = await client.delete_post("not-a-real-id")
        logger.warning(
            "Delete failed: {} (error map: {})",
            result.error,
            client.get_operation_error(OperationKind.DELETE),
        )

        await client.get_stats("alice")
        logger.info("alice stats: {}", client.stats.model_dump())
        logger.info("bob can edit alice's post: {}", await client.can_user_edit_post(draft.id, "bob"))
    finally:
        await close_connections(backend.db_name)


if __name__ == "__main__":
    asyncio.run(main())
