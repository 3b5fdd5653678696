"""OpenStack compute provisioner."""

from skybake.provision.openstack.instance import OpenStackComputeClient
from skybake.provision.openstack.instance import server_attributes
