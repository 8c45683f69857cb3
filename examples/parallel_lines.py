"""Example: residual and Jacobian rows of a parallel line constraint."""

import numpy as np

from geocluster import Direction, ParallelConstraint


def main() -> None:
    line1 = np.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0])
    line2 = np.array([2.0, 1.0, 0.0, 0.8, 0.6, 0.0])

    for direction in (Direction.SAME, Direction.OPPOSITE, Direction.BOTH):
        constraint = ParallelConstraint("line", "line", direction)
        print(f"{constraint}: residual={constraint.calculate(line1, line2):.6f}")
        if direction is not Direction.BOTH:
            print(f"  d/dline1 = {constraint.full_gradient_first(line1, line2)}")
            print(f"  d/dline2 = {constraint.full_gradient_second(line1, line2)}")


if __name__ == "__main__":
    main()
