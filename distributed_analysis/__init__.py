"""distributed_analysis — Cross-cluster analysis run coordination over DynamoDB.

Provides:
    - Request publisher (writes the coordination record)
    - Verdict poller (waits for an external actor to set ``Result``)
    - Outcome mapping and the Argo Rollouts metric plugin adapter
    - Lambda invocation bridge and command-line tool
"""

__version__ = "1.0.0"
