import unittest
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError, ResponseError

from landmark_cache.stats import (
    STAT_BOUNDS_QUERIES,
    STAT_CACHE_HITS,
    Stats,
)


def redis_with_values(values):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=values)
    client = MagicMock()
    client.pipeline.return_value = pipe
    return client, pipe


class TestStats(unittest.IsolatedAsyncioTestCase):

    async def test_incr(self):
        client = MagicMock()
        client.incrby = AsyncMock()
        stats = Stats(client)

        await stats.incr(STAT_CACHE_HITS)
        await stats.incr(STAT_BOUNDS_QUERIES, 3)
        await stats.incr(STAT_BOUNDS_QUERIES, 0)

        self.assertEqual(client.incrby.await_count, 2)
        client.incrby.assert_any_await(STAT_CACHE_HITS, 1)
        client.incrby.assert_any_await(STAT_BOUNDS_QUERIES, 3)

    async def test_incr_is_fail_open(self):
        client = MagicMock()
        client.incrby = AsyncMock(side_effect=ConnectionError("down"))

        await Stats(client).incr(STAT_CACHE_HITS)

    async def test_snapshot(self):
        # order follows ALL_STATS: bounds_queries, cache_hits, backfills, upstream_calls, landmarks_added, searches
        client, pipe = redis_with_values(["4", "3", "1", "1", "7", None])

        snap = await Stats(client).snapshot()

        self.assertEqual(pipe.get.call_count, 6)
        self.assertEqual(snap["bounds_queries"], 4)
        self.assertEqual(snap["cache_hits"], 3)
        self.assertEqual(snap["landmarks_added"], 7)
        self.assertEqual(snap["searches"], 0)
        self.assertEqual(snap["hit_ratio"], 0.75)

    async def test_snapshot_without_queries_has_no_ratio(self):
        client, _ = redis_with_values([None] * 6)
        snap = await Stats(client).snapshot()
        self.assertIsNone(snap["hit_ratio"])

    async def test_snapshot_when_redis_down(self):
        client, pipe = redis_with_values([])
        pipe.execute.side_effect = ConnectionError("down")

        snap = await Stats(client).snapshot()

        self.assertEqual(snap["bounds_queries"], 0)
        self.assertIsNone(snap["hit_ratio"])

    async def test_snapshot_survives_redis_response_error(self):
        client, pipe = redis_with_values([])
        pipe.execute.side_effect = ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")

        snap = await Stats(client).snapshot()

        self.assertEqual(snap["cache_hits"], 0)
        self.assertIsNone(snap["hit_ratio"])

    async def test_redis_ok(self):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        self.assertTrue(await Stats(client).redis_ok())

        client.ping.side_effect = ConnectionError("down")
        self.assertFalse(await Stats(client).redis_ok())


if __name__ == '__main__':
    unittest.main()
