"""Run submission and host correlation service for a Tekton control plane."""
