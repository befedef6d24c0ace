"""LP interface used by the stage subproblems."""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Union
import time
import numpy as np
from scipy import sparse
from scipy.optimize import linprog
from .exceptions import DimensionError, ConfigurationError
from .result import SolveResult, Status

_STATUS_MAP = {
    0: Status.OPTIMAL,
    1: Status.MAX_ITERATIONS,
    2: Status.PRIMAL_INFEASIBLE,
    3: Status.DUAL_INFEASIBLE,
    4: Status.NUMERICAL_ERROR,
}


def solve(
    c: np.ndarray,
    A: Optional[Union[np.ndarray, sparse.spmatrix]] = None,
    b: Optional[np.ndarray] = None,
    lb: Optional[np.ndarray] = None,
    ub: Optional[np.ndarray] = None,
    constraint_l: Optional[np.ndarray] = None,
    constraint_u: Optional[np.ndarray] = None,
    constraint_senses: Optional[List[str]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> SolveResult:
    """Minimize ``c'x`` over row and column bounds and return primal and row duals.

    Rows are given either by ``constraint_senses`` with ``b`` or by the two
    sided bounds ``constraint_l <= A x <= constraint_u``; ``b`` alone means
    equality rows. ``SolveResult.y[i]`` is the derivative of the optimal
    objective with respect to the bound of row ``i`` (for a two sided row,
    the sum of both sides' contributions).
    """
    start_time = time.perf_counter()
    params = params or {}
    max_iters = params.get('max_iterations', params.get('max_iters'))
    presolve = params.get('presolve', True)

    c = np.asarray(c, dtype=np.float64).ravel()
    n = len(c)
    lb = np.zeros(n) if lb is None else np.asarray(lb, dtype=np.float64).ravel()
    ub = np.full(n, np.inf) if ub is None else np.asarray(ub, dtype=np.float64).ravel()

    if len(lb) != n or len(ub) != n:
        raise DimensionError(f"Bounds mismatch: lb={len(lb)}, ub={len(ub)}, n={n}")

    if A is not None:
        A = A.toarray() if sparse.issparse(A) else np.asarray(A, dtype=np.float64)
        if A.ndim == 1:
            A = A.reshape(1, -1)
        m = A.shape[0]
        if m > 0 and A.shape[1] != n:
            raise DimensionError(f"A columns {A.shape[1]} != n={n}")
    else:
        m = 0
        A = np.zeros((0, n))

    if constraint_senses is not None:
        if b is None:
            raise ConfigurationError("b required with constraint_senses")
        b = np.asarray(b, dtype=np.float64).ravel()
        if len(constraint_senses) != m or len(b) != m:
            raise DimensionError(f"{m} rows but {len(constraint_senses)} senses and {len(b)} rhs")
        constr_l = np.full(m, -np.inf)
        constr_u = np.full(m, np.inf)
        for i, sense in enumerate(constraint_senses):
            if sense in ('=', '=='):
                constr_l[i] = constr_u[i] = b[i]
            elif sense in ('<=', '<'):
                constr_u[i] = b[i]
            elif sense in ('>=', '>'):
                constr_l[i] = b[i]
            else:
                raise ConfigurationError(f"unknown constraint sense '{sense}'")
    elif constraint_l is not None or constraint_u is not None:
        constr_l = np.asarray(constraint_l, dtype=np.float64) if constraint_l is not None else np.full(m, -np.inf)
        constr_u = np.asarray(constraint_u, dtype=np.float64) if constraint_u is not None else np.full(m, np.inf)
    elif b is not None:
        b = np.asarray(b, dtype=np.float64).ravel()
        constr_l = constr_u = b
    else:
        constr_l = constr_u = np.zeros(m)

    if len(constr_l) != m or len(constr_u) != m:
        raise DimensionError(f"row bounds have {len(constr_l)}/{len(constr_u)} entries, expected {m}")

    result = _solve_highs(c, A, lb, ub, constr_l, constr_u, max_iters, presolve)
    result.solve_time = time.perf_counter() - start_time
    return result


def _solve_highs(c, A, lb, ub, constr_l, constr_u, max_iters, presolve):
    n, m = len(c), A.shape[0]

    eq_mask = np.abs(constr_l - constr_u) < 1e-12
    eq_rows = np.flatnonzero(eq_mask)
    upper_rows = np.flatnonzero(~eq_mask & ~np.isinf(constr_u))
    lower_rows = np.flatnonzero(~eq_mask & ~np.isinf(constr_l))

    A_eq = A[eq_rows] if len(eq_rows) else None
    b_eq = constr_l[eq_rows] if len(eq_rows) else None
    A_ub, b_ub = None, None
    if len(upper_rows) or len(lower_rows):
        A_ub = np.vstack([A[upper_rows], -A[lower_rows]])
        b_ub = np.concatenate([constr_u[upper_rows], -constr_l[lower_rows]])

    bounds = [(l if not np.isinf(l) else None, u if not np.isinf(u) else None) for l, u in zip(lb, ub)]
    options = {'presolve': presolve}
    if max_iters is not None:
        options['maxiter'] = int(max_iters)

    res = linprog(c, A_ub=A_ub, b_ub=b_ub, A_eq=A_eq, b_eq=b_eq, bounds=bounds,
                  method='highs', options=options)

    status = _STATUS_MAP.get(res.status, Status.NUMERICAL_ERROR)
    if status != Status.OPTIMAL:
        return SolveResult(status=status, objective=float('nan'), x=np.full(n, np.nan),
                           y=np.full(m, np.nan), iterations=getattr(res, 'nit', 0),
                           solve_time=0.0, problem_info={'message': res.message})

    y = np.zeros(m)
    if len(eq_rows):
        y[eq_rows] = res.eqlin.marginals
    if A_ub is not None:
        marg = np.asarray(res.ineqlin.marginals)
        n_upper = len(upper_rows)
        y[upper_rows] += marg[:n_upper]
        # -A x <= -l: d(obj)/d(l) = -d(obj)/d(-l)
        y[lower_rows] -= marg[n_upper:]

    return SolveResult(status=status, objective=float(res.fun), x=np.asarray(res.x, dtype=np.float64),
                       y=y, iterations=getattr(res, 'nit', 0), solve_time=0.0,
                       problem_info={'message': res.message})
