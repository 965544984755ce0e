from .solver_bridge import SolverBridge, SolveResult, EntityStatus, entity_status_color
