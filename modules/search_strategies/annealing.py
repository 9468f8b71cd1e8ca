import math
from typing import Any, Dict, Optional, Sequence

import numpy as np

from modules.model_factory.domains import IntegerDomain
from modules.search_strategies.base import SearchStrategy
from modules.search_strategies.latin_hypercube import LatinHypercubeSearch
from utils.exceptions import ConfigurationError


class AnnealingSearch(SearchStrategy):
    """
    Simulated annealing over the tunable parameters.

    The search starts from an `initial`-point Latin hypercube and then
    proposes one neighbour of the current candidate per iteration:

    - numeric dimensions move together on the unit scale along a random
      direction, by a radius drawn from [radius_min, r_max(k)] where r_max
      shrinks linearly from radius_max to radius_min over `iterations`; an
      integer dimension that stays on its value steps to an adjacent one;
    - each discrete dimension flips to another value with probability `flip`.

    A neighbour better than the global best becomes current and best; one
    better than the current candidate becomes current; a worse one is
    accepted with probability exp(-delta / T), delta being the percent loss
    versus the current candidate and T = 1 / (cooling_coef * k). After
    `restart` iterations without a new best the search moves back to the
    best candidate. It stops after `iterations` iterations or `no_improve`
    consecutive iterations without a new best.
    """
    name = "annealing"
    MAX_NEIGHBOUR_TRIES = 50

    def __init__(self, params, iterations: int = 10, no_improve: int = 10, restart: int = 8,
                 cooling_coef: float = 0.02, radius: Sequence[float] = (0.05, 0.15),
                 flip: float = 0.75, initial: int = 3, seed=None, logger=None):
        super().__init__(params, seed, logger)
        radius_min, radius_max = radius
        if not 0 < radius_min <= radius_max < 1:
            raise ConfigurationError("Annealing radius must satisfy 0 < min <= max < 1.",
                                     field='search.annealing.radius')
        if cooling_coef <= 0:
            raise ConfigurationError("cooling_coef must be > 0.", field='search.annealing.cooling_coef')
        self.iterations = iterations
        self.no_improve = no_improve
        self.restart = restart
        self.cooling_coef = cooling_coef
        self.radius_min = radius_min
        self.radius_max = radius_max
        self.flip = flip
        self.initial = initial

        self.iteration = 0
        self.current: Optional[int] = None
        self.best: Optional[int] = None
        self.since_best = 0
        self._since_restart = 0
        self._pending: Optional[int] = None
        self._started = False
        self._failed_start = False
        # One entry per iteration: 'new best', 'better', 'accepted', 'discarded', 'restart', 'failed'
        self.trace = []

    # --- proposals ---

    def propose(self, history):
        if not self._started:
            design = LatinHypercubeSearch(
                self.params, size=self.initial, seed=self.rng.randint(0, 2 ** 31 - 1), logger=self.logger
            )
            return self._make_candidates(history, design.configurations())

        self.iteration += 1
        values = self._unseen_neighbour(history, history.candidate(self.current).values)
        existing = history.seen(values)
        if existing is not None:
            self._pending = existing.index
            return []
        candidates = self._make_candidates(history, [values])
        self._pending = candidates[0].index
        return candidates

    def _unseen_neighbour(self, history, values: Dict[str, Any]) -> Dict[str, Any]:
        neighbour = self.neighbour(values)
        tries = 1
        while history.seen(neighbour) is not None and tries < self.MAX_NEIGHBOUR_TRIES:
            neighbour = self.neighbour(values)
            tries += 1
        return neighbour

    def radius_bound(self, k: int) -> float:
        if self.iterations <= 1:
            return self.radius_max
        frac = (min(k, self.iterations) - 1) / (self.iterations - 1)
        return self.radius_max - (self.radius_max - self.radius_min) * frac

    def neighbour(self, values: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(values)
        numeric = [name for name, domain in self.params.items() if domain.numeric]
        discrete = [name for name, domain in self.params.items() if not domain.numeric]

        if numeric:
            origin = np.array([self.params[n].to_unit(values[n]) for n in numeric])
            r_max = self.radius_bound(max(self.iteration, 1))
            for _ in range(self.MAX_NEIGHBOUR_TRIES):
                direction = self.rng.normal(size=len(numeric))
                direction /= np.linalg.norm(direction) or 1.0
                point = origin + self.rng.uniform(self.radius_min, r_max) * direction
                if np.all((point >= 0) & (point <= 1)):
                    break
            point = np.clip(point, 0.0, 1.0)
            for name, start, u in zip(numeric, origin, point):
                result[name] = self._move(name, values[name], start, u)

        for name in discrete:
            options = [v for v in self.params[name].values if v != values[name]]
            if options and self.rng.uniform() < self.flip:
                result[name] = options[self.rng.randint(len(options))]
        return result

    def _move(self, name: str, value: Any, start: float, u: float) -> Any:
        domain = self.params[name]
        moved = domain.from_unit(u)
        if isinstance(domain, IntegerDomain) and moved == value and domain.low < domain.high:
            # Integer bins can be wider than the radius; step to the adjacent value instead
            step = 1 if u >= start else -1
            if not domain.low <= value + step <= domain.high:
                step = -step
            moved = int(value + step)
        return moved

    # --- bookkeeping ---

    def _loss(self, history, index: int) -> float:
        summary = history.summary(index)
        if summary.n == 0:
            return math.inf
        return self.metric.sign * summary.mean

    def observe(self, history):
        if not self._started:
            self._started = True
            leader = history.best()
            if leader is None:
                self.logger.warning("Annealing: every initial candidate failed; stopping.")
                self._failed_start = True
                return
            self.best = self.current = leader[0].index
            self.logger.info(f"Annealing: initial best is candidate {self.best} ({leader[1].mean:.5g}).")
            return

        pending, self._pending = self._pending, None
        loss = self._loss(history, pending)
        best_loss = self._loss(history, self.best)
        current_loss = self._loss(history, self.current)

        if loss < best_loss:
            self.best = self.current = pending
            self.since_best = 0
            self._since_restart = 0
            outcome = 'new best'
        else:
            self.since_best += 1
            self._since_restart += 1
            if math.isinf(loss):
                outcome = 'failed'
            elif loss < current_loss:
                self.current = pending
                outcome = 'better'
            elif self.rng.uniform() <= self.acceptance_probability(loss, current_loss, self.iteration):
                self.current = pending
                outcome = 'accepted'
            else:
                outcome = 'discarded'

            if self._since_restart >= self.restart:
                self.current = self.best
                self._since_restart = 0
                outcome = 'restart'

        self.trace.append(outcome)
        self.logger.info(
            f"Annealing iteration {self.iteration}: candidate {pending} {outcome} "
            f"(best={self.best}, no improvement for {self.since_best})."
        )

    def acceptance_probability(self, loss: float, current_loss: float, k: int) -> float:
        scale = abs(current_loss) if current_loss != 0 else 1.0
        pct_diff = (loss - current_loss) / scale * 100.0
        temperature = 1.0 / (self.cooling_coef * max(k, 1))
        return math.exp(-pct_diff / temperature)

    def is_done(self, history):
        if not self._started:
            return False
        if self._failed_start:
            return True
        return self.iteration >= self.iterations or self.since_best >= self.no_improve
