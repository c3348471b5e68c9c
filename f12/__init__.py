"""Force12 scheduler.

Single-node autoscaling control loop for a fixed-capacity cluster:
 - samples demand for a priority-1 and a priority-2 task class
 - gives priority-1 first claim on capacity, priority-2 the remainder
 - starts/stops tasks through Docker or Marathon, one change at a time
 - periodically pushes cluster state to a remote API (best effort)
"""
