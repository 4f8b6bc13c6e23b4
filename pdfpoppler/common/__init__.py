"""Shared configuration, constants, types and errors."""
