"""
Optimizers over a controller's flat parameter vector.

- train_cmaes: CMA-ES through the cma package (recommended)
- train_sa: single-chain Simulated Annealing with Gaussian mutations
- rollout: run a controller open-loop against a sensor-reading callback

Both trainers minimize a caller-supplied fitness(controller) -> float; the
controller is reset before every evaluation. Simulation and task
definitions live outside this package.
"""

import numpy as np
import cma
from typing import Callable, List, Optional, Tuple

from .controllers import Controller
from .grid import Grid


def rollout(
    controller: Controller,
    sensors: Callable[[float], Grid],
    duration: float,
    dt: float = 0.1,
) -> List[Grid]:
    """
    Reset controller and call it every dt time units from t=0 up to duration.

    Args:
        controller: Controller to run
        sensors: Callback giving the sensor-reading grid at time t
        duration: Episode length
        dt: Time step

    Returns:
        List of actuation grids, one per round
    """
    controller.reset()
    outputs = []
    n_steps = int(np.floor(duration / dt)) + 1
    for i in range(n_steps):
        t = i * dt
        outputs.append(controller.control(t, sensors(t)))
    return outputs


def _evaluate(controller: Controller, params: np.ndarray, fitness: Callable[[Controller], float]) -> float:
    controller.set_params(params)
    controller.reset()
    return float(fitness(controller))


def train_cmaes(
    controller: Controller,
    fitness: Callable[[Controller], float],
    max_evals: int = 2000,
    sigma0: float = 0.5,
    popsize: Optional[int] = None,
    x0: Optional[np.ndarray] = None,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> Tuple[np.ndarray, List[dict]]:
    """
    Minimize fitness over the controller's parameters with CMA-ES.

    Args:
        controller: Controller whose get/set_params are searched
        fitness: Lower is better
        max_evals: Maximum fitness evaluations
        sigma0: Initial step size
        popsize: Population size (None = cma default)
        x0: Starting point (default: current parameters)
        seed: Seed of the strategy's sampling
        verbose: Print progress

    Returns:
        Tuple of (best_params, history); the controller is left set to best_params
    """
    if x0 is None:
        x0 = controller.get_params()
    x0 = np.asarray(x0, dtype=np.float64)
    n_params = len(x0)
    if verbose:
        print(f"  Parameters: {n_params}")

    opts = {
        'maxfevals': max_evals,
        'verb_disp': 0,
        'verb_log': 0,
    }
    if popsize is not None:
        opts['popsize'] = popsize
    if seed is not None:
        # cma treats seed 0 as "pick one at random"
        opts['seed'] = seed + 1

    es = cma.CMAEvolutionStrategy(x0, sigma0, opts)
    history = []
    gen = 0

    while not es.stop():
        solutions = es.ask()
        fitnesses = [_evaluate(controller, np.asarray(s), fitness) for s in solutions]
        es.tell(solutions, fitnesses)

        if gen % 10 == 0 or es.stop():
            history.append({
                'generation': gen,
                'evaluations': es.result.evaluations,
                'fitness': float(es.result.fbest),
                'sigma': float(es.sigma),
            })
            if verbose:
                print(f"  Gen {gen:4d} | Evals {es.result.evaluations:5d} | "
                      f"fitness={es.result.fbest:.6f} | sigma={es.sigma:.4f}")
        gen += 1

    best = np.asarray(es.result.xbest, dtype=np.float64)
    controller.set_params(best)
    controller.reset()
    if verbose:
        print(f"  -> Stopped: {es.stop()}")
    return best, history


def train_sa(
    controller: Controller,
    fitness: Callable[[Controller], float],
    max_steps: int = 5000,
    temp_init: float = 1.0,
    temp_final: float = 0.001,
    mutation_rate: float = 0.2,
    mutation_std: float = 0.1,
    seed: Optional[int] = None,
    callback: Optional[Callable[[int, np.ndarray, float], None]] = None,
    verbose: bool = False,
) -> Tuple[np.ndarray, List[dict]]:
    """
    Minimize fitness with single-chain Simulated Annealing.

    Each step mutates a random subset of the parameters (each with
    probability mutation_rate, at least one) by Gaussian noise.

    Args:
        controller: Controller whose get/set_params are searched
        fitness: Lower is better
        max_steps: Number of SA steps
        temp_init: Initial temperature
        temp_final: Final temperature
        mutation_rate: Per-parameter mutation probability
        mutation_std: Std of the Gaussian mutation
        seed: Random seed
        callback: Called periodically with (step, best_params, best_fitness)
        verbose: Print progress

    Returns:
        Tuple of (best_params, history); the controller is left set to best_params
    """
    rng = np.random.default_rng(seed)

    current = controller.get_params().astype(np.float64)
    current_fitness = _evaluate(controller, current, fitness)
    best = current.copy()
    best_fitness = current_fitness

    temp = temp_init
    decay = (temp_final / temp_init) ** (1.0 / max(max_steps, 1))
    report_every = max(max_steps // 5, 1)
    history = []

    for step in range(max_steps):
        candidate = current.copy()
        if len(candidate) > 0:
            mask = rng.random(len(candidate)) < mutation_rate
            if not mask.any():
                mask[rng.integers(len(candidate))] = True
            candidate[mask] += rng.normal(0.0, mutation_std, size=int(mask.sum()))

        cand_fitness = _evaluate(controller, candidate, fitness)
        delta = cand_fitness - current_fitness

        if delta < 0 or rng.random() < np.exp(-delta / temp):
            current = candidate
            current_fitness = cand_fitness
            if current_fitness < best_fitness:
                best = current.copy()
                best_fitness = current_fitness

        temp *= decay

        if step % report_every == 0 or step == max_steps - 1:
            history.append({'step': step, 'fitness': float(best_fitness)})
            if callback:
                callback(step, best, best_fitness)
            if verbose:
                print(f"  Step {step:5d}: fitness={best_fitness:.6f}")

    controller.set_params(best)
    controller.reset()
    return best, history
