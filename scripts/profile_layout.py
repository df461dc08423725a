"""
Profiling script for mindlayout layout performance analysis.

Timing lives here, outside the library: each scenario builds a random
mindmap and runs one layout engine under cProfile.
"""

import cProfile
import pstats
import io
from pstats import SortKey
import time

import numpy as np

from mindlayout import Edge, Graph, LayoutConfig, LayoutType, Node, compute_layout


def create_graph(n_nodes, n_edges):
    """Create a random hierarchy of n nodes plus about n_edges cross edges."""
    np.random.seed(42)
    graph = Graph()
    ids = []
    for i in range(n_nodes):
        parent = ids[np.random.randint(0, len(ids))] if ids else None
        ids.append(graph.add_node(Node(f"Node {i}", parent_id=parent)))

    for _ in range(n_edges):
        source = ids[np.random.randint(0, n_nodes)]
        target = ids[np.random.randint(0, n_nodes)]
        if source != target:
            graph.add_edge(Edge(source, target))

    return graph


def profile_radial():
    """Profile the radial layout (500 nodes)."""
    graph = create_graph(500, 0)
    compute_layout(graph, LayoutConfig(), LayoutType.radial)


def profile_tree():
    """Profile the tree layout (2000 nodes)."""
    graph = create_graph(2000, 0)
    compute_layout(graph, LayoutConfig(), LayoutType.tree)


def profile_small_force():
    """Profile a small force layout (20 nodes, 30 edges)."""
    graph = create_graph(20, 30)
    compute_layout(graph, LayoutConfig(), LayoutType.force)


def profile_medium_force():
    """Profile a medium force layout (100 nodes, 200 edges)."""
    graph = create_graph(100, 200)
    compute_layout(graph, LayoutConfig(), LayoutType.force)


def profile_large_force():
    """Profile a large force layout (300 nodes, 600 edges, capped iterations)."""
    graph = create_graph(300, 600)
    config = LayoutConfig(parameters={"max_iterations": 200})
    compute_layout(graph, config, LayoutType.force)


def benchmark_scenario(name, func):
    """Benchmark a scenario and print timing."""
    print(f"\n{'='*60}")
    print(f"Profiling: {name}")
    print('='*60)

    profiler = cProfile.Profile()

    start_time = time.time()
    profiler.enable()
    func()
    profiler.disable()
    elapsed = time.time() - start_time

    print(f"\nTotal time: {elapsed:.3f}s")

    s = io.StringIO()
    ps = pstats.Stats(profiler, stream=s).sort_stats(SortKey.CUMULATIVE)
    ps.print_stats(20)

    print("\nTop 20 functions by cumulative time:")
    print(s.getvalue())

    return profiler


def main():
    """Run all profiling scenarios."""
    print("mindlayout Performance Profiling")
    print("=" * 60)

    scenarios = [
        ("Radial (500 nodes)", profile_radial),
        ("Tree (2000 nodes)", profile_tree),
        ("Force small (20 nodes, 30 edges)", profile_small_force),
        ("Force medium (100 nodes, 200 edges)", profile_medium_force),
        ("Force large (300 nodes, 600 edges)", profile_large_force),
    ]

    profilers = {}
    for name, func in scenarios:
        profilers[name] = benchmark_scenario(name, func)

    print("\n" + "="*60)
    print("Saving detailed profiles...")
    print("="*60)

    for name, profiler in profilers.items():
        filename = f"profile_{name.lower().replace(' ', '_').replace('(', '').replace(')', '').replace(',', '')}.prof"
        profiler.dump_stats(filename)
        print(f"Saved: {filename}")

    print("\nTo view detailed profile, use:")
    print("  python -m pstats <profile_file>")


if __name__ == "__main__":
    main()
