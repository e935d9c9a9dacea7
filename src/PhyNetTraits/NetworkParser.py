#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyNetTraits --
##  Trait Evolution on Phylogenetic Networks
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

"""
Last Stable Edit : 10/16/26
First Included in Version : 1.0.0
Approved for Release : Yes. Fully Documented

Reads rooted phylogenetic networks written in extended newick format,

    (A:2.5,((B:1,#H1:0.5::0.1):1,(C:1,(D:0.5)#H1:0.5::0.9):1):0.5);

where each node is written "name:length:support:gamma" and a reticulation
appears twice, under the same "#" label: once with its subtree (the major
edge, by default) and once as a leaf (the minor edge). Inheritance
probabilities written as "[&gamma=0.9]" comments are accepted as well.
"""

import os
import re
from io import StringIO
from typing import Any
from warnings import warn

from Bio import Phylo
from Bio.Phylo.NewickIO import NewickError
from nexus import NexusReader

from .Network import Node, Network, Edge


#####################
#### Error Class ####
#####################

class NetworkParserError(Exception):
    """
    Error that is raised whenever an input file or newick string contains
    issues that disallow a proper parse of a network.
    """
    def __init__(self, message : str = "Something went wrong \
                                        parsing a network") -> None:
        """
        Initialize the error with a message.

        Args:
            message (str, optional): Custom error message. Defaults to
                                     "Something went wrong parsing a network".
        """
        self.message = message
        super().__init__(self.message)

###################
#### CONSTANTS ####
###################

# A comment, a quoted label, or a run of up to three ":" separated fields
# (length, support, gamma).
_FIELDS = re.compile(r"(\[[^\]]*\])|('(?:[^']|'')*')"
                     r"|:([^:,;()\[\]]*)(?::([^:,;()\[\]]*))?"
                     r"(?::([^:,;()\[\]]*))?")

DEFAULT_MAJOR_GAMMA : float = 0.9

##########################
#### Helper Functions ####
##########################

def _rewrite_field(match : re.Match) -> str:
    """
    Turn a "name:length:support:gamma" field run into the "name:length" plus
    "[&gamma=...]" form that the biopython tokenizer understands. Comments and
    quoted labels are passed through untouched. Support values are dropped.
    """
    if match.group(1) is not None or match.group(2) is not None:
        return match.group(0)

    length, gamma = match.group(3), match.group(5)
    rewritten = ""
    if length is not None and length.strip() != "":
        rewritten += ":" + length.strip()
    if gamma is not None and gamma.strip() != "":
        rewritten += "[&gamma=" + gamma.strip() + "]"
    return rewritten

def rewrite_extended_newick(newick : str) -> str:
    """
    Rewrite the extended newick fields of a string into comment form.

    Args:
        newick (str): an extended newick string.
    Returns:
        str: an equivalent newick string, with gamma values in
             "[&gamma=...]" comments.
    """
    return _FIELDS.sub(_rewrite_field, newick)

def parse_attributes(attr_str : str) -> tuple[str, int]:
    """
    Takes the formatting string from the extended newick grammar and parses
    it into the event type and index.

    IE: H1 returns "Hybridization", 1
    IE: LGT21 returns "Lateral Gene Transfer", 21

    Args:
        attr_str (str): A reticulation name, without its "#".
    Returns:
        tuple[str, int]: the event type, and the event index (None if the
                         label has no trailing integer).
    """
    if attr_str.startswith("LGT"):
        event, rest = "Lateral Gene Transfer", attr_str[3:]
    elif attr_str.startswith("H"):
        event, rest = "Hybridization", attr_str[1:]
    elif attr_str.startswith("R"):
        event, rest = "Recombination", attr_str[1:]
    else:
        warn(f"Expected H, R or LGT after # but received '{attr_str}'.")
        event, rest = "Unknown", attr_str.lstrip("ABCDEFGHIJKLMNOPQRSTUVWXYZ")

    try:
        return event, int(rest)
    except ValueError:
        return event, None

def parse_gamma(comment : str) -> float:
    """
    Read an inheritance probability out of a "&gamma=..." comment.

    Args:
        comment (str): a node comment, possibly None.
    Raises:
        NetworkParserError: if the gamma value is not a number in [0, 1].
    Returns:
        float: the gamma value, or None if the comment holds none.
    """
    if comment is None or comment.split("=")[0].strip() != "&gamma":
        return None
    try:
        gamma = float(comment.split("=")[1])
    except ValueError as err:
        raise NetworkParserError(f"Malformed gamma comment: '{comment}'") \
            from err
    if gamma < 0 or gamma > 1:
        raise NetworkParserError(f"Gamma value {gamma} is not a probability")
    return gamma

###################################
#### Extended Newick Reading  #####
###################################

class _TopologyBuilder:
    """
    Translates a biopython tree (in which a reticulation shows up as several
    clades sharing a "#" name) into a Network, then cleans it up so that every
    tree node has at most two children and every reticulation has exactly two
    parents, one child, and a pair of gammas summing to 1.
    """

    def __init__(self, tree : Any) -> None:
        self.tree = tree
        self.net : Network = Network()
        self.name_count : int = 0
        self.internal_count : int = 0
        # clade -> Node, where clades of one reticulation share a Node
        self.clade_nodes : dict[Any, Node] = {}
        self.hybrids : dict[str, Node] = {}
        # reticulation -> edge of the occurrence that carries its subtree
        self.defining_edge : dict[Node, Edge] = {}
        self.edge_count : int = 0

    def build(self) -> Network:
        self._number_internal_clades()
        self._make_nodes(self.tree.root)
        self._make_edges()
        self._suppress_root()
        self._suppress_degree_two()
        self._fix_reticulations()
        self._resolve_polytomies()
        return self.net

    #### NODE CREATION ####

    def _number_internal_clades(self) -> None:
        # Unnamed internal nodes are numbered -1, -2, ... in the order of
        # their left parenthesis, which is clade preorder.
        self.preorder_numbers : dict[Any, int] = {}
        for clade in self.tree.find_clades(order = "preorder"):
            if len(clade.clades) > 0:
                self.internal_count += 1
                self.preorder_numbers[clade] = -self.internal_count

    def _make_nodes(self, clade : Any) -> None:
        # Postorder, which is the order labels appear in the text
        for child in clade.clades:
            self._make_nodes(child)

        name = clade.name
        if name is not None and name.startswith("#"):
            node = self.hybrids.get(name)
            if node is None:
                self.name_count += 1
                event, index = parse_attributes(name[1:])
                node = Node(name = name, is_reticulation = True,
                            number = self.name_count)
                node.add_attribute("eventType", event)
                node.add_attribute("index", index)
                self.hybrids[name] = node
                self.net.add_nodes(node)
            self.clade_nodes[clade] = node
            return

        if len(clade.clades) == 0:
            if name is None or name == "":
                raise NetworkParserError("Leaves must be named")
            if self.net.has_node_named(name) is not None:
                raise NetworkParserError(f"Leaf name '{name}' appears twice")
            self.name_count += 1
            node = Node(name = name, number = self.name_count)
        elif name is not None:
            warn(f"Internal node named '{name}' without being a hybrid node.\
                   Node names might be meaningless after tree modifications.")
            self.name_count += 1
            node = Node(name = name, number = self.name_count)
        else:
            node = Node(number = self.preorder_numbers[clade])

        self.clade_nodes[clade] = node
        self.net.add_nodes(node)

    #### EDGE CREATION ####

    def _new_edge(self, src : Node, dest : Node, length : float,
                  **kwargs) -> Edge:
        self.edge_count += 1
        edge = Edge(src, dest, length = length, **kwargs)
        edge.set_number(self.edge_count)
        self.net.add_edges(edge)
        return edge

    def _make_edges(self) -> None:
        for parent in self.tree.find_clades(order = "preorder"):
            parent_node = self.clade_nodes[parent]
            for clade in parent.clades:
                node = self.clade_nodes[clade]
                length = clade.branch_length
                if length is None:
                    warn(f"No branch length has been provided for the edge\
                           above node {node.get_number()}. Setting the branch\
                           length to 1.")
                    length = 1.0
                if length < 0:
                    raise NetworkParserError(f"Negative branch length above \
                                               node {node.get_number()}")

                gamma = parse_gamma(clade.comment)

                if not node.is_reticulation():
                    if gamma is not None and gamma != 1:
                        warn(f"Gamma read for the edge above node \
                               {node.get_number()}, but it is not a hybrid \
                               edge, so gamma={gamma} is ignored")
                    self._new_edge(parent_node, node, length)
                    continue

                edge = self._new_edge(parent_node, node, length,
                                      gamma = gamma, is_hybrid = True,
                                      is_major = False)
                if len(clade.clades) > 0:
                    if node in self.defining_edge and \
                       self.defining_edge[node].is_major():
                        raise NetworkParserError(f"Both occurrences of hybrid\
                            node {node.get_name()} are internal nodes: the \
                            subtree of a hybrid node must only be given at one\
                            of its occurrences.")
                    edge.set_is_major(True)
                    self.defining_edge[node] = edge
                elif node not in self.defining_edge:
                    # Leaf occurrences only, so far. The first one defines.
                    self.defining_edge[node] = edge

    #### CLEANUP ####

    def _suppress_root(self) -> None:
        root = self.net.root()
        while self.net.out_degree(root) == 1 and not root.is_reticulation():
            child = self.net.get_children(root)[0]
            if child.is_reticulation():
                break
            self.net.remove_node(root)
            root = child

    def _suppress_degree_two(self) -> None:
        for node in list(self.net.get_nodes()):
            if node.is_reticulation():
                continue
            if self.net.in_degree(node) == 1 and self.net.out_degree(node) == 1:
                above = self.net.in_edges(node)[0]
                below = self.net.out_edges(node)[0]
                parent, child = above.src, below.dest
                length = above.get_length() + below.get_length()
                self.net.remove_node(node)
                # Keep the flags of the lower edge, it may be a hybrid edge
                merged = Edge(parent, child, length = length,
                              gamma = below.get_gamma(),
                              is_hybrid = below.is_hybrid(),
                              is_major = below.is_major())
                merged.set_number(below.get_number())
                self.net.add_edges(merged)
                if child.is_reticulation() and \
                   self.defining_edge.get(child) is below:
                    self.defining_edge[child] = merged

    def _next_internal_number(self) -> int:
        return min([0] + [node.get_number() for node in self.net.get_nodes()
                          if node.get_number() is not None]) - 1

    def _fix_reticulations(self) -> None:
        for node in list(self.hybrids.values()):
            in_edges = self.net.in_edges(node)
            if len(in_edges) > 2:
                raise NetworkParserError(f"Hybrid node {node.get_name()} has \
                    more than two hybrid edges attached to it: polytomy that \
                    cannot be resolved without intersecting cycles.")
            if len(in_edges) == 1:
                raise NetworkParserError(f"Hybrid node {node.get_name()} was \
                    found with only one hybrid edge attached")

            children = self.net.get_children(node)
            if len(children) == 0:
                warn(f"Hybrid node {node.get_name()} is a leaf, so an extra \
                       child is added")
                self.name_count += 1
                leaf = Node(name = node.get_name().lstrip("#"),
                            number = self.name_count)
                self.net.add_nodes(leaf)
                self._new_edge(node, leaf, 0.0)
            elif len(children) > 1:
                warn(f"Hybrid node {node.get_name()} has more than one child,\
                       so it is expanded with another node")
                expanded = Node(number = self._next_internal_number())
                self.net.add_nodes(expanded)
                for edge in self.net.out_edges(node):
                    self.net.remove_edge(edge)
                    moved = Edge(expanded, edge.dest,
                                 length = edge.get_length(),
                                 gamma = edge.get_gamma(),
                                 is_hybrid = edge.is_hybrid(),
                                 is_major = edge.is_major())
                    moved.set_number(edge.get_number())
                    self.net.add_edges(moved)
                    if edge.dest.is_reticulation() and \
                       self.defining_edge.get(edge.dest) is edge:
                        self.defining_edge[edge.dest] = moved
                self._new_edge(node, expanded, 0.0)

            self._fix_gammas(node)

    def _fix_gammas(self, node : Node) -> None:
        defining = self.defining_edge[node]
        other = [edge for edge in self.net.in_edges(node)
                 if edge is not defining][0]
        g1, g2 = defining.get_gamma(), other.get_gamma()

        if g1 is None and g2 is None:
            warn(f"Hybrid edges for hybrid node {node.get_name()} do not \
                   contain gamma values, set default: \
                   {DEFAULT_MAJOR_GAMMA},{1 - DEFAULT_MAJOR_GAMMA}")
            g1, g2 = DEFAULT_MAJOR_GAMMA, 1 - DEFAULT_MAJOR_GAMMA
        elif g2 is None:
            warn(f"Only one hybrid edge of hybrid node {node.get_name()} has \
                   a gamma value ({g1}) set, the other edge will be assigned \
                   {1 - g1}.")
            g2 = 1 - g1
        elif g1 is None:
            warn(f"Only one hybrid edge of hybrid node {node.get_name()} has \
                   a gamma value ({g2}) set, the other edge will be assigned \
                   {1 - g2}.")
            g1 = 1 - g2
        elif abs(g1 + g2 - 1) > 1e-8:
            raise NetworkParserError(f"Hybrid edges for hybrid node \
                {node.get_name()} have gammas that do not sum up to one: \
                {g1},{g2}")

        defining.set_gamma(g1)
        other.set_gamma(g2)
        # The occurrence that carries the subtree stays major on ties
        defining.set_is_major(g1 >= g2)
        other.set_is_major(g2 > g1)

    def _resolve_polytomies(self) -> None:
        # Like an unrooted binary tree, the root may keep three children
        root = self.net.root()
        queue = [node for node in self.net.get_nodes()
                 if not node.is_reticulation()]
        while len(queue) != 0:
            node = queue.pop(0)
            max_children = 3 if node is root else 2
            out = self.net.out_edges(node)
            if len(out) <= max_children:
                continue
            warn(f"Polytomy found in node {node.get_number()}, the first \
                   children are kept and the others are grouped under a new \
                   node")
            resolved = Node(number = self._next_internal_number())
            self.net.add_nodes(resolved)
            for edge in out[max_children - 1:]:
                self.net.remove_edge(edge)
                moved = Edge(resolved, edge.dest,
                             length = edge.get_length(),
                             gamma = edge.get_gamma(),
                             is_hybrid = edge.is_hybrid(),
                             is_major = edge.is_major())
                moved.set_number(edge.get_number())
                self.net.add_edges(moved)
            self._new_edge(node, resolved, 0.0)
            queue.append(resolved)


def read_topology(newick : str) -> Network:
    """
    Read a network from an extended newick string, or from a file holding one.

    Raises:
        NetworkParserError: if the string is malformed, or describes an
                            invalid network.
    Args:
        newick (str): an extended newick string, or the path to a file
                      whose content is one.
    Returns:
        Network: the parsed network. Named nodes are numbered 1, 2, ... in the
                 order they appear in the string, unnamed internal nodes are
                 numbered -1 (the root), -2, ... in the order of their left
                 parenthesis.
    """
    if os.path.isfile(newick):
        with open(newick) as handle:
            newick = handle.read()

    newick = newick.strip()
    if not newick.endswith(";"):
        raise NetworkParserError("Newick string does not end in ;")
    if not newick.startswith("("):
        raise NetworkParserError(f"Expected beginning of tree with ( but \
                                   received {newick[:1]} instead")

    try:
        tree = Phylo.read(StringIO(rewrite_extended_newick(newick)), "newick")
    except (NewickError, ValueError) as err:
        raise NetworkParserError(f"Could not parse newick string: {err}") \
            from err

    return _TopologyBuilder(tree).build()

###########################
#### Nexus File Parser ####
###########################

class NetworkParser:
    """
    Class that parses networks that are from the TREES block of nexus files.
    """

    def __init__(self, filename : str) -> None:
        """
        Initialize the parser with a nexus file.

        Raises:
            NetworkParserError: If the NexusReader library cannot parse the file.
        Args:
            filename (str): the path to the nexus file to be parsed.
        Returns:
            N/A
        """
        self.filename = filename

        try:
            self.reader = NexusReader.from_file(filename)
        except (OSError, IOError, ValueError) as err:
            raise NetworkParserError("NexusReader library could not find \
                                      or parse this file.") from err

        #List of all parsed networks
        self.networks : list[Network] = []

        # Map from parsed networks to their names (the label that appears
        # before the newick string in a nexus file).
        self.net_2_name : dict[Network, str] = {}

        # Finally, parse the file.
        self.parse()

    def parse(self) -> None:
        """
        Using the reader object, iterate through each of the trees
        defined in the file and store them as Network objects into the
        networks array.

        Raises:
            NetworkParserError: if the file has no trees.
        Args:
            N/A
        Returns:
            N/A
        """
        if self.reader.trees is None:
            raise NetworkParserError("There are no trees listed in the file")

        for t in self.reader.trees:
            # grab the right hand side of the tree definition for
            # the tree, and the left for the name
            lhs, _, rhs = str(t).partition("=")
            name : str = lhs.split()[-1]

            # Drop a leading rooting comment such as [&R]
            rhs = re.sub(r"^\s*\[[^\]]*\]\s*", "", rhs).strip()
            if not rhs.endswith(";"):
                rhs += ";"

            new_network = read_topology(rhs)

            self.networks.append(new_network)
            self.net_2_name[new_network] = name

    def get_network(self, index : int) -> Network:
        """
        Retrieves the network at index 'index' in the networks field

        Args:
            index (int): index

        Returns:
            Network: a parsed Network
        """
        return self.networks[index]

    def get_all_networks(self) -> list[Network]:
        """
        Retrieves the network array field

        Args:
            N/A
        Returns:
            list[Network] : the set of parsed networks
        """
        return self.networks

    def name_of_network(self, network : Network) -> str:
        """
        Given a parsed network, get the label for it.

        Args:
            network (Network): a network parsed from this NetworkParser
        Returns:
            str: Network label, as appears in the nexus file.
        """
        return self.net_2_name[network]
