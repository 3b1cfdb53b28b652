import logging

import numpy as np

from geofit.epipolar import latent_variable_method, svd_rank_correction
from geofit.models import FundamentalMatrixData, epipolar_residuals
from geofit.optimizer import fns, params_to_matrix, sampson_error
from geofit.ransac import ransac


def rotation_y(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]], dtype=np.float64)


def project(points3d: np.ndarray, f: float) -> np.ndarray:
    return f * points3d[:, :2] / points3d[:, 2:3]


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    rng = np.random.default_rng(0)

    # Two cameras: X1 = R X0 + t, focal length f (pixels)
    f = 600.0
    R = rotation_y(0.1)
    t = np.array([1.0, 0.1, 0.05], dtype=np.float64)

    # True F for (x0, y0, f) F (x1, y1, f)^T = 0
    tx = np.array([[0.0, -t[2], t[1]], [t[2], 0.0, -t[0]], [-t[1], t[0], 0.0]])
    F_true = (tx @ R).T
    F_true /= np.linalg.norm(F_true)

    # Inlier correspondences with pixel noise
    n_in = 200
    X0 = rng.uniform([-2.0, -2.0, 4.0], [2.0, 2.0, 8.0], size=(n_in, 3))
    X1 = X0 @ R.T + t
    pts0 = project(X0, f) + rng.normal(0.0, 0.5, size=(n_in, 2))
    pts1 = project(X1, f) + rng.normal(0.0, 0.5, size=(n_in, 2))

    # Outliers (wrong matches)
    n_out = 60
    o0 = rng.uniform(-300.0, 300.0, size=(n_out, 2))
    o1 = rng.uniform(-300.0, 300.0, size=(n_out, 2))

    data = FundamentalMatrixData.from_pairs(np.vstack([pts0, o0]), np.vstack([pts1, o1]), f0=f)

    res = ransac(data, tau=2.0, max_iters=5000, seed=42)
    print("F_true:\n", F_true)
    if res is None:
        print("RANSAC failed.")
        return

    inliers = data.subset(np.flatnonzero(res.inliers))
    theta = fns(inliers).theta
    F_fns = svd_rank_correction(params_to_matrix(theta))

    lvm = latent_variable_method(inliers, F_fns)
    F_est = lvm.F if np.sum(lvm.F * F_true) > 0 else -lvm.F

    print("F_est:\n", F_est)
    print("num_inliers:", res.num_inliers, "/", len(data))
    print("ransac rms_error:", res.rms_error)
    print("sampson error (rank-corrected FNS):", sampson_error(inliers, F_fns.reshape(9)))
    print("sampson error (latent variable):", lvm.error)
    print("max |epipolar residual| on clean points:",
          np.abs(epipolar_residuals(F_est, pts0, pts1, f)).max())


if __name__ == "__main__":
    main()
