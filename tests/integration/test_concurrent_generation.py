"""Concurrency tests for the engine over the bundled blueprints.

Covers:
- Parallel ``create_project_async`` calls into disjoint roots
- Parallel first load of a fresh registry from several threads
- Identical plans for identical input, whichever thread renders them
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from blueprint_engine import BlueprintEngine, BlueprintRegistry, OutputSpec, PackageSource
from blueprint_engine.config import EngineConfig
from blueprint_engine.registry import get_default_registry

pytestmark = pytest.mark.integration


@pytest.fixture
def batch_engine() -> BlueprintEngine:
    return BlueprintEngine(registry=get_default_registry(), config=EngineConfig(non_interactive=True))


class TestParallelGeneration:
    @pytest.mark.asyncio
    async def test_disjoint_roots(self, batch_engine, tmp_path, tree_snapshot):
        requests = [
            ("cli", {"name": "tool"}, "simple"),
            ("cli", {"name": "shell", "logger": "zap"}, "standard"),
            ("web-api", {"name": "api", "architecture": "hexagonal", "database.driver": "sqlite"}, "advanced"),
            ("library", {"name": "text-kit"}, "standard"),
            ("lambda", {"name": "worker", "trigger": "sqs"}, "standard"),
            ("web-api", {"name": "shop", "framework": "chi", "auth.type": "jwt"}, "standard"),
        ]

        results = await asyncio.gather(
            *(
                batch_engine.create_project_async(
                    blueprint_type,
                    values,
                    OutputSpec.disk(tmp_path / values["name"]),
                    complexity=complexity,
                )
                for blueprint_type, values, complexity in requests
            )
        )

        for (_, values, _), result in zip(requests, results):
            written = tree_snapshot(tmp_path / values["name"])
            assert set(written) == set(result.paths)
            go_mod = written["go.mod"].decode("utf-8")
            assert go_mod.startswith(f"module github.com/username/{values['name']}\n")

    @pytest.mark.asyncio
    async def test_parallel_previews_match_sequential(self, batch_engine):
        values = {"name": "api", "architecture": "ddd", "database.driver": "postgres", "database.orm": "sqlx"}
        expected = batch_engine.preview("web-api", values).files

        results = await asyncio.gather(
            *(batch_engine.create_project_async("web-api", values, OutputSpec.memory()) for _ in range(8))
        )
        assert all(dict(result.files) == dict(expected) for result in results)


class TestParallelLoading:
    def test_first_load_from_many_threads(self):
        registry = BlueprintRegistry(PackageSource(), strict=True)
        barrier = threading.Barrier(6)

        def first_lookup() -> list[str]:
            barrier.wait()
            return registry.ids()

        with ThreadPoolExecutor(max_workers=6) as pool:
            listings = list(pool.map(lambda _: first_lookup(), range(6)))

        assert all(listing == listings[0] for listing in listings)
        assert set(listings[0]) == {"cli", "cli-simple", "lambda", "library", "library-simple", "web-api"}

    def test_render_from_many_threads_is_deterministic(self, batch_engine):
        config = batch_engine.resolve_config(
            "web-api", "standard", "advanced",
            {"name": "api", "framework": "echo", "auth.type": "session", "database.driver": "mysql"},
        )

        def render(_: int) -> str:
            return batch_engine.render_plan(config.blueprint_id, config).digest()

        with ThreadPoolExecutor(max_workers=8) as pool:
            digests = set(pool.map(render, range(16)))

        assert len(digests) == 1
