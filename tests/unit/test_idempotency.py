"""
Unit tests for client mutation id generation
"""

import re
import threading

from core.idempotency import MutationIdGenerator, generate_client_mutation_id

ID_SHAPE = re.compile(r"^event-create-(\d+)-([a-z0-9]{6})-rec001$")


class TestMutationIdGenerator:

    def test_shape(self):
        generator = MutationIdGenerator(clock=lambda: 1700000000.5)

        value = generator.generate("event-create", "rec001")

        match = ID_SHAPE.match(value)
        assert match
        assert match.group(1) == "1700000000500"

    def test_without_identifier(self):
        value = MutationIdGenerator().generate("event-publish")

        assert re.match(r"^event-publish-\d+-[a-z0-9]{6}$", value)

    def test_same_millisecond_stays_unique(self):
        generator = MutationIdGenerator(clock=lambda: 1700000000.0)

        ids = [generator.generate("event-create", "rec001") for _ in range(500)]
        timestamps = [int(ID_SHAPE.match(i).group(1)) for i in ids]

        assert len(set(ids)) == 500
        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == 500

    def test_unique_across_threads(self):
        generator = MutationIdGenerator()
        results = []
        lock = threading.Lock()

        def mint():
            batch = [generator.generate("event-create") for _ in range(200)]
            with lock:
                results.extend(batch)

        threads = [threading.Thread(target=mint) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 1600
        assert len(set(results)) == 1600

    def test_module_level_helper(self):
        assert generate_client_mutation_id("event-create") != generate_client_mutation_id("event-create")
