"""Store domain services; import the submodules directly."""
