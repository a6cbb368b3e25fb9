"""
lwtclient: concurrent register-history generator for linearizability checking.

Run a workload against a Cassandra cluster::

    lwtclient -H node1,node2 -t 4 -n 1000 -r 1,2,3 > history.edn

Drive the engine programmatically::

    from lwtclient.config import WorkloadConfig
    from lwtclient.memory_store import MemoryStore
    from lwtclient.orchestrator import run_workload

    config = WorkloadConfig(registers=[1, 2], thread_count=4, operation_count=400)
    report = run_workload(config, MemoryStore().session)
"""

__version__ = "0.1.0"
