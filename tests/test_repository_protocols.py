"""
Tests for port definitions.

These tests verify that:
1. Protocol definitions are valid and importable
2. Protocols define the expected methods
3. Concrete implementations provide every method of their port
"""
import pytest

# All tests in this module are pure logic tests (no TestClient) - mark as unit
pytestmark = pytest.mark.unit


PORT_METHODS = {
    "ExerciseCatalog": [
        "lookup_exact",
        "search_fulltext",
        "search_trigram",
        "search_semantic",
        "upsert_by_normalized_slug",
        "get_by_id",
    ],
    "WorkoutRepository": ["save_parsed_workout", "get_workout"],
    "LLMClient": ["complete"],
    "EmbeddingService": ["generate_query_embedding"],
}


class TestProtocolMethods:
    """Each port declares the methods the pipeline calls."""

    @pytest.mark.parametrize("port_name", sorted(PORT_METHODS))
    def test_port_methods(self, port_name):
        import application.ports as ports

        port = getattr(ports, port_name)
        for method_name in PORT_METHODS[port_name]:
            assert hasattr(port, method_name), f"{port_name} should define {method_name}"


class TestImplementationsMatchPorts:
    """Concrete classes provide every port method."""

    @pytest.mark.parametrize("port_name,implementation", [
        ("ExerciseCatalog", "infrastructure.memory.exercise_catalog.InMemoryExerciseCatalog"),
        ("ExerciseCatalog", "infrastructure.db.exercise_catalog.SupabaseExerciseCatalog"),
        ("ExerciseCatalog", "backend.core.staged_catalog.StagedExerciseCatalog"),
        ("WorkoutRepository", "infrastructure.memory.workout_repository.InMemoryWorkoutRepository"),
        ("WorkoutRepository", "infrastructure.db.workout_repository.SupabaseWorkoutRepository"),
        ("LLMClient", "backend.ai.llm_client.AnthropicLLMClient"),
        ("LLMClient", "backend.ai.llm_client.OpenAILLMClient"),
        ("LLMClient", "tests.fakes.llm_client.FakeLLMClient"),
        ("EmbeddingService", "backend.services.embedding_service.EmbeddingService"),
        ("EmbeddingService", "tests.fakes.llm_client.FakeEmbeddingService"),
    ])
    def test_implementation(self, port_name, implementation):
        import importlib

        module_name, class_name = implementation.rsplit(".", 1)
        cls = getattr(importlib.import_module(module_name), class_name)
        for method_name in PORT_METHODS[port_name]:
            assert callable(getattr(cls, method_name, None)), \
                f"{class_name} should implement {method_name}"
