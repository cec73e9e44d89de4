# Shapes of the payloads payfrontend receives from internal services. They
# are validated before being cached or rendered.
#
# See https://github.com/vdbergh/vtjson for a description of the schema format.

from vtjson import ge, intersect, lax, regex, size, union

non_empty_str = intersect(str, size(1, ...))
gateway_account_id = union(regex(r"[0-9]+", name="gateway_account_id"), int)
external_id = regex(r"[0-9a-zA-Z]{1,64}", name="external_id")

merchant_details_schema = lax(
    {
        "name?": str,
        "telephone_number?": union(str, None),
        "address_line1?": union(str, None),
        "address_line2?": union(str, None),
        "address_city?": union(str, None),
        "address_postcode?": union(str, None),
        "address_country?": union(str, None),
        "email?": union(str, None),
    }
)

custom_branding_schema = lax(
    {
        "css_url?": union(str, None),
        "image_url?": union(str, None),
    }
)

service_schema = lax(
    {
        "external_id": external_id,
        "name": non_empty_str,
        "gateway_account_ids?": [gateway_account_id, ...],
        "merchant_details?": union(merchant_details_schema, None),
        "custom_branding?": union(custom_branding_schema, None),
        "redirect_to_service_immediately_on_terminal_state?": bool,
    }
)

charge_schema = lax(
    {
        "charge_id?": str,
        "externalId?": str,
        "amount": intersect(int, ge(0)),
        "description?": str,
        "status?": str,
        "return_url?": str,
        "gateway_account": lax(
            {
                "gateway_account_id": gateway_account_id,
                "service_name?": str,
                "analytics_id?": union(str, None),
                "type?": str,
                "payment_provider?": str,
            }
        ),
    }
)

token_schema = lax(
    {
        "charge": charge_schema,
        "used?": bool,
    }
)
