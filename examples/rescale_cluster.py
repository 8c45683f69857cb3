"""Example pipeline: normalize a cluster, move its frame, and restore it."""

import numpy as np
from scipy.spatial.transform import Rotation

from geocluster import ClusterFrame, ClusterMode, ParameterArena, SimilarityTransform, pose_size


def main() -> None:
    rng = np.random.default_rng(123)
    points = rng.uniform(-500.0, 500.0, size=(5, 3))

    arena = ParameterArena(pose_size(3))
    cluster = ClusterFrame(SimilarityTransform(translation=[10.0, 0.0, 0.0]))
    cluster.bind_working_storage(ClusterMode.FREE, arena)
    for point in points:
        cluster.add_member(point)

    scale = cluster.compute_scale()
    print(f"Cluster scale: {scale:.6f}")
    print(f"Midpoint (frame space): {cluster.midpoint}")

    cluster.apply_scale(scale)
    cluster.recalculate()
    print("Normalized positions:")
    for member in cluster.members:
        print(f"  [{member.parameter_offset}] {member.current}")

    tilted = cluster.frame * SimilarityTransform.from_scipy_rotation(Rotation.from_euler("z", 15, degrees=True))
    cluster.reset_rotation(tilted)

    cluster.finish_calculation()
    print("\nRestored positions after rotation reset:")
    for member, point in zip(cluster.members, points):
        print(f"  {member.current}  (registered at {point})")


if __name__ == "__main__":
    main()
