"""
Casbin Model

The casbin model the policy store's enforcer is built from.

This module is part of PORTAL_AUTHZ.
"""

# Portal RBAC model:
# - p: role, object, action, effect, domain, acting role
# - g: role inheritance within one domain (child, parent, domain)
# - g2: portal inheritance (child portal, parent portal)
# - effect: any matching deny wins, otherwise any matching allow
# - portalCross(role, query domain, rule domain) is registered by the store
PORTAL_RBAC_MODEL = """
[request_definition]
r = sub, dom, obj, act

[policy_definition]
p = sub, obj, act, eft, dom, acting

[role_definition]
g = _, _, _
g2 = _, _

[policy_effect]
e = some(where (p.eft == allow)) && !some(where (p.eft == deny))

[matchers]
m = ((r.dom == p.dom && (r.sub == p.sub || g(r.sub, p.sub, r.dom))) || portalCross(r.sub, r.dom, p.dom)) && (p.acting == p.sub || p.acting == "*") && keyMatch(r.obj, p.obj) && keyMatch(r.act, p.act)
"""
