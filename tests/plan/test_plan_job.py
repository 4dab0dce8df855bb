import unittest

from asdfaccel.models import PluginRef
from asdfaccel.plan import build_jobs


class TestBuildJobs(unittest.TestCase):
    def test_one_job_per_plugin_in_order(self) -> None:
        refs = [PluginRef(name=n) for n in ("a", "b", "c")]
        jobs = build_jobs(refs, max_parallel=2)
        self.assertEqual([j.plugin.name for j in jobs], ["a", "b", "c"])
        self.assertEqual([j.seq for j in jobs], [0, 1, 2])
        self.assertEqual([j.slot for j in jobs], [0, 1, 0])

    def test_empty_selection(self) -> None:
        self.assertEqual(build_jobs([], max_parallel=4), [])

    def test_rejects_non_positive_parallelism(self) -> None:
        with self.assertRaises(ValueError):
            build_jobs([PluginRef(name="a")], max_parallel=0)


if __name__ == "__main__":
    unittest.main()
