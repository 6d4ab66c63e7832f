from .field import Field, FieldStore, Increment
from .topology import Element, update_elements, get_nodes, find_elements
__all__=['Field','FieldStore','Increment','Element','update_elements','get_nodes','find_elements']
