"""Provisioning of the source server of an image build."""
