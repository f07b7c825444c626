"""gensync: keep autogenerated files of a local checkout in step with the server"""

__version__ = "0.1.0"
