"""Interface of the compute service used to run source servers."""
import abc

from skybake.provision import common


class ComputeClient(abc.ABC):
    """The operations skybake needs from a compute service.

    Implementations translate provider failures to
    `exceptions.ComputeApiError`, and a server the provider does not know
    (any more) to `exceptions.ServerNotFoundError`.
    """

    @abc.abstractmethod
    def create_server(self,
                      request: common.CreateRequest) -> common.ServerHandle:
        """Submits a create request.

        Returns as soon as the provider acknowledged the request; the server
        is usually still building.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def get_server(self, server_id: common.ServerId) -> common.ServerHandle:
        raise NotImplementedError

    @abc.abstractmethod
    def delete_server(self, server_id: common.ServerId) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def force_delete_server(self, server_id: common.ServerId) -> None:
        """Deletes a server, skipping the provider's soft-delete grace."""
        raise NotImplementedError
